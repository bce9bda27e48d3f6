from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field


class KeyCollectionCreate(BaseModel):
    contract_id: UUID
    scheduled_at: datetime
    location: str = Field(min_length=1)
    notes: Optional[str] = None


class KeyCollectionUpdate(BaseModel):
    scheduled_at: Optional[datetime] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class KeyCollectionOut(BaseModel):
    id: UUID
    contract_id: UUID
    landlord_id: UUID
    tenant_id: UUID
    scheduled_at: datetime
    location: str
    notes: Optional[str] = None
    landlord_confirmed: bool
    tenant_confirmed: bool
    status: str
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
