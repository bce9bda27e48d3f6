import uuid
from sqlalchemy import Boolean, Column, String, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from shared.core.database import Base


class KeyCollection(Base):
    __tablename__ = "key_collections"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # no FK: a collection outlives a deleted early-stage contract
    contract_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    landlord_id = Column(UUID(as_uuid=True), nullable=False)
    tenant_id = Column(UUID(as_uuid=True), nullable=False)

    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    location = Column(Text, nullable=False)
    notes = Column(Text)

    landlord_confirmed = Column(Boolean, nullable=False, default=False)
    tenant_confirmed = Column(Boolean, nullable=False, default=False)

    # scheduled | confirmed | completed | cancelled
    status = Column(String(16), nullable=False, default="scheduled")
    completed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
