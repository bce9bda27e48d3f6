import uuid
from sqlalchemy import Boolean, Column, String, Integer, ForeignKey, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from shared.core.database import Base


class Property(Base):
    __tablename__ = "properties"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    landlord_id = Column(UUID(as_uuid=True), ForeignKey(
        "users.id"), nullable=False)

    title = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    city = Column(String(100))
    property_type = Column(String(32), default="apartment")
    monthly_rent = Column(Integer)  # cents

    # draft | active | rented | inactive; "active" means searchable
    status = Column(String(16), nullable=False, default="active")
    default_checklist_template_id = Column(UUID(as_uuid=True), nullable=True)

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)
