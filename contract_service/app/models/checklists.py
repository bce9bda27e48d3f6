import uuid
from sqlalchemy import Boolean, Column, String, ForeignKey, DateTime, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from shared.core.database import Base, JSONType


class ChecklistTemplate(Base):
    __tablename__ = "checklist_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    landlord_id = Column(UUID(as_uuid=True), ForeignKey(
        "users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    property_type = Column(String(32))

    # [{"room": "Kitchen", "items": [{"name": "Oven"}]}] or {"rooms": [...]}
    items = Column(JSONType, nullable=False, default=list)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)


class MoveInChecklist(Base):
    __tablename__ = "move_in_checklists"
    __table_args__ = (
        UniqueConstraint("contract_id", name="uq_move_in_checklist_contract"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey(
        "contracts.id"), nullable=False)
    template_id = Column(UUID(as_uuid=True), ForeignKey(
        "checklist_templates.id"), nullable=True)

    items = Column(JSONType, nullable=False, default=list)

    # draft | tenant_signed | completed
    status = Column(String(16), nullable=False, default="draft")

    tenant_signature = Column(Text)
    tenant_signed_at = Column(DateTime(timezone=True))
    tenant_notes = Column(Text)
    landlord_signature = Column(Text)
    landlord_signed_at = Column(DateTime(timezone=True))
    landlord_notes = Column(Text)

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
