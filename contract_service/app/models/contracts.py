import uuid
from sqlalchemy import Boolean, Column, String, Integer, Date, ForeignKey, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    property_id = Column(UUID(as_uuid=True), ForeignKey(
        "properties.id"), nullable=False)
    landlord_id = Column(UUID(as_uuid=True), ForeignKey(
        "users.id"), nullable=False)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey(
        "users.id"), nullable=False)
    application_id = Column(UUID(as_uuid=True), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # amounts in cents
    monthly_rent = Column(Integer, nullable=False)
    security_deposit = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    language = Column(String(2), nullable=False, default="en")

    terms = Column(Text)
    special_conditions = Column(Text)
    contract_pdf_url = Column(Text)

    landlord_signature = Column(Text)
    landlord_signed_at = Column(DateTime(timezone=True))
    tenant_signature = Column(Text)
    tenant_signed_at = Column(DateTime(timezone=True))

    # draft | sent_to_tenant | tenant_signed | fully_signed | active | expired | terminated
    status = Column(String(20), nullable=False, default="draft")

    deposit_paid = Column(Boolean, nullable=False, default=False)
    deposit_paid_at = Column(DateTime(timezone=True))
    deposit_payment_method = Column(String(32))
    deposit_payment_reference = Column(String(255))

    first_month_rent_paid = Column(Boolean, nullable=False, default=False)
    first_month_rent_paid_at = Column(DateTime(timezone=True))
    first_month_rent_payment_method = Column(String(32))
    first_month_rent_payment_reference = Column(String(255))

    keys_collected = Column(Boolean, nullable=False, default=False)
    keys_collected_at = Column(DateTime(timezone=True))

    checklist_id = Column(UUID(as_uuid=True), nullable=True)
    checklist_deadline = Column(DateTime(timezone=True))
    checklist_completed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    property = relationship("Property")
    landlord = relationship("Users", foreign_keys=[landlord_id])
    tenant = relationship("Users", foreign_keys=[tenant_id])
    payments = relationship("Payment", back_populates="contract")
