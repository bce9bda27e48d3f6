from datetime import datetime
from uuid import UUID
from typing import Optional, List
from pydantic import BaseModel

from shared.core.schemas import CommonQueryParams
from ..enum.contracts_enum import PaymentMethod


class PaymentIntentOut(BaseModel):
    payment_id: UUID
    client_secret: Optional[str] = None
    processor_reference: str
    amount: int
    platform_fee: int
    net_amount: int
    currency: str


class ConfirmPaymentRequest(BaseModel):
    processor_reference: str


class ManualPaymentRequest(BaseModel):
    method: PaymentMethod
    reference: Optional[str] = None


class PaymentOut(BaseModel):
    id: UUID
    contract_id: UUID
    tenant_id: UUID
    landlord_id: UUID
    payment_type: str
    amount: int
    platform_fee: int
    net_amount: int
    commission_percent: int
    currency: str
    description: Optional[str] = None
    status: str
    payment_method: Optional[str] = None
    processor_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PaymentRequest(CommonQueryParams):
    status: Optional[str] = None
    contract_id: Optional[UUID] = None


class PaymentListResponse(BaseModel):
    payments: List[PaymentOut]
    total: int


class LandlordPaymentStats(BaseModel):
    total_earned: int
    pending_amount: int
    completed_count: int
    pending_count: int
