import uuid
from sqlalchemy import Column, String, Date, ForeignKey, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from shared.core.database import Base


class ContractTermination(Base):
    __tablename__ = "contract_terminations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey(
        "contracts.id"), nullable=False, index=True)

    requested_by = Column(UUID(as_uuid=True), nullable=False)
    requested_by_role = Column(String(16), nullable=False)  # landlord | tenant

    desired_end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)

    status = Column(String(16), nullable=False, default="pending")
    # pending | approved | rejected

    responded_by = Column(UUID(as_uuid=True))
    responded_at = Column(DateTime(timezone=True))
    response_message = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
