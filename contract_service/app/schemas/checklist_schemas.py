from datetime import datetime
from uuid import UUID
from typing import Optional, List, Any
from pydantic import BaseModel, Field


class ChecklistItem(BaseModel):
    name: str
    condition: Optional[str] = ""
    notes: Optional[str] = ""
    photos: List[str] = []


class ChecklistRoom(BaseModel):
    room: str
    items: List[ChecklistItem] = []


class ChecklistTemplateBase(BaseModel):
    name: Optional[str] = None
    property_type: Optional[str] = None
    rooms: Optional[List[ChecklistRoom]] = None
    is_default: Optional[bool] = None


class ChecklistTemplateCreate(ChecklistTemplateBase):
    name: str = Field(min_length=1)
    rooms: List[ChecklistRoom]
    is_default: bool = False


class ChecklistTemplateUpdate(ChecklistTemplateBase):
    pass


class ChecklistTemplateOut(BaseModel):
    id: UUID
    landlord_id: UUID
    name: str
    property_type: Optional[str] = None
    items: Any
    is_default: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ChecklistOut(BaseModel):
    id: UUID
    contract_id: UUID
    template_id: Optional[UUID] = None
    items: Any
    status: str
    tenant_signed_at: Optional[datetime] = None
    tenant_notes: Optional[str] = None
    landlord_signed_at: Optional[datetime] = None
    landlord_notes: Optional[str] = None
    deadline: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ChecklistItemsUpdate(BaseModel):
    rooms: List[ChecklistRoom]


class ChecklistTenantSign(BaseModel):
    signature: str = Field(min_length=1)
    rooms: Optional[List[ChecklistRoom]] = None
    notes: Optional[str] = None


class ChecklistLandlordSign(BaseModel):
    signature: str = Field(min_length=1)
    notes: Optional[str] = None


class ChecklistNotesRequest(BaseModel):
    notes: str


class ChecklistPhotoUpload(BaseModel):
    room: str
    item: str
    image: str = Field(min_length=1)   # base64 or data URL
    file_name: Optional[str] = None


class ChecklistPhotoOut(BaseModel):
    url: str
