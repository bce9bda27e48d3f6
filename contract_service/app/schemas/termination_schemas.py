from datetime import datetime, date
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field


class TerminationCreate(BaseModel):
    reason: str = Field(min_length=1)
    desired_end_date: date


class TerminationRespond(BaseModel):
    approved: bool
    message: Optional[str] = None


class TerminationOut(BaseModel):
    id: UUID
    contract_id: UUID
    requested_by: UUID
    requested_by_role: str
    desired_end_date: date
    reason: str
    status: str
    responded_by: Optional[UUID] = None
    responded_at: Optional[datetime] = None
    response_message: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
