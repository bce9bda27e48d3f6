from enum import Enum


class ContractStatus(str, Enum):
    draft = "draft"
    sent_to_tenant = "sent_to_tenant"
    tenant_signed = "tenant_signed"
    fully_signed = "fully_signed"
    active = "active"
    expired = "expired"
    terminated = "terminated"


class PaymentType(str, Enum):
    rent = "rent"
    deposit = "deposit"


class ObligationType(str, Enum):
    first_month_rent = "first_month_rent"
    deposit = "deposit"


class PaymentStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class PaymentMethod(str, Enum):
    card = "card"
    bank_transfer = "bank_transfer"
    cash = "cash"
    other = "other"


class KeyCollectionStatus(str, Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class ChecklistStatus(str, Enum):
    draft = "draft"
    tenant_signed = "tenant_signed"
    completed = "completed"


class TerminationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class PropertyStatus(str, Enum):
    draft = "draft"
    active = "active"
    rented = "rented"
    inactive = "inactive"


class PropertyType(str, Enum):
    apartment = "apartment"
    house = "house"
    studio = "studio"
    room = "room"


class NotificationKind(str, Enum):
    contract = "contract"
    payment = "payment"
    checklist = "checklist"
    key_collection = "key_collection"
    system = "system"


class RewardReason(str, Enum):
    contract_signed = "contract_signed"
