import uuid
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from shared.core.database import Base


class PlatformSettings(Base):
    __tablename__ = "platform_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    platform_commission_percentage = Column(Integer, nullable=False, default=5)
    updated_by = Column(UUID(as_uuid=True))
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())
