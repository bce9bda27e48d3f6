from datetime import datetime
from uuid import UUID
from typing import Optional, List
from pydantic import BaseModel, Field

from shared.core.schemas import CommonQueryParams


class NotificationOut(BaseModel):
    id: UUID
    user_id: UUID
    type: str
    title: str
    message: str
    link: Optional[str] = None
    posted_date: Optional[datetime] = None
    read: bool

    model_config = {"from_attributes": True}


class NotificationRequest(CommonQueryParams):
    unread_only: Optional[bool] = False


class NotificationListResponse(BaseModel):
    notifications: List[NotificationOut]
    total: int
    unread: int


class RewardTransactionOut(BaseModel):
    id: UUID
    points: int
    reason: str
    reference_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RewardSummary(BaseModel):
    balance: int
    transactions: List[RewardTransactionOut]


class PlatformSettingsOut(BaseModel):
    platform_commission_percentage: int
    updated_at: Optional[datetime] = None


class PlatformSettingsUpdate(BaseModel):
    platform_commission_percentage: int = Field(ge=0, le=100)
