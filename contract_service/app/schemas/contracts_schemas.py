from datetime import datetime, date
from uuid import UUID
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator

from shared.core.schemas import CommonQueryParams
from ..enum.contracts_enum import ContractStatus


class ContractBase(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: Optional[int] = Field(None, gt=0)        # cents
    security_deposit: Optional[int] = Field(None, gt=0)    # cents
    currency: Optional[str] = None
    language: Optional[str] = None
    terms: Optional[str] = None
    special_conditions: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class ContractCreate(ContractBase):
    property_id: UUID
    tenant_id: UUID
    application_id: Optional[UUID] = None
    start_date: date
    end_date: date
    monthly_rent: int = Field(gt=0)
    security_deposit: int = Field(gt=0)
    template_id: Optional[UUID] = None
    send_immediately: bool = False

    @field_validator("application_id", "template_id", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        if v == "":
            return None
        return v


class ContractUpdate(ContractBase):
    pass


class ContractSign(BaseModel):
    signature: str = Field(min_length=1)  # base64 PNG or data URL


class ContractStatusUpdate(BaseModel):
    status: ContractStatus


class AttachChecklistRequest(BaseModel):
    template_id: UUID


class ContractOut(BaseModel):
    id: UUID
    property_id: UUID
    landlord_id: UUID
    tenant_id: UUID
    application_id: Optional[UUID] = None
    start_date: date
    end_date: date
    monthly_rent: int
    security_deposit: int
    currency: str
    language: str
    terms: Optional[str] = None
    special_conditions: Optional[str] = None
    contract_pdf_url: Optional[str] = None
    status: str

    landlord_signed_at: Optional[datetime] = None
    tenant_signed_at: Optional[datetime] = None

    deposit_paid: bool
    deposit_paid_at: Optional[datetime] = None
    deposit_payment_method: Optional[str] = None
    first_month_rent_paid: bool
    first_month_rent_paid_at: Optional[datetime] = None
    first_month_rent_payment_method: Optional[str] = None

    keys_collected: bool
    keys_collected_at: Optional[datetime] = None

    checklist_id: Optional[UUID] = None
    checklist_deadline: Optional[datetime] = None
    checklist_completed_at: Optional[datetime] = None
    checklist_status: Optional[str] = None

    property_title: Optional[str] = None
    property_address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContractRequest(CommonQueryParams):
    status: Optional[str] = None       # "all" | "draft" | ...
    role: Optional[str] = None         # "landlord" | "tenant"


class ContractListResponse(BaseModel):
    contracts: List[ContractOut]
    total: int


class ContractDocumentOut(BaseModel):
    contract_id: UUID
    url: str
