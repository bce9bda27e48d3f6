import uuid
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey(
        "contracts.id"), nullable=False, index=True)
    tenant_id = Column(UUID(as_uuid=True), nullable=False)
    landlord_id = Column(UUID(as_uuid=True), nullable=False)

    payment_type = Column(String(16), nullable=False)  # rent | deposit
    # gross / fee / net in cents, frozen at intent creation
    amount = Column(Integer, nullable=False)
    platform_fee = Column(Integer, nullable=False, default=0)
    net_amount = Column(Integer, nullable=False)
    commission_percent = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="EUR")
    description = Column(String(255))

    # pending | processing | completed | failed | refunded
    status = Column(String(16), nullable=False, default="pending")
    payment_method = Column(String(32))
    processor_reference = Column(String(255), index=True)
    failure_reason = Column(Text)

    due_date = Column(DateTime(timezone=True))
    paid_at = Column(DateTime(timezone=True))
    refunded_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    contract = relationship("Contract", back_populates="payments")
