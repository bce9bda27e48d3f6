from datetime import datetime
import uuid
from sqlalchemy import Boolean, Column, String, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from shared.core.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    # contract | payment | checklist | key_collection | system
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(255))
    posted_date = Column(DateTime, default=datetime.utcnow)
    read = Column(Boolean, default=False)
    is_deleted = Column(Boolean, default=False)
    is_email = Column(Boolean, default=False, nullable=False)
