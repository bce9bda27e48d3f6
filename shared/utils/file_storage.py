import base64
import binascii
import logging
from datetime import datetime
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import PreconditionFailedError
from shared.models.stored_files import StoredFile

logger = logging.getLogger(__name__)


def file_url(file_id) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/files/{file_id}"


class FileStorage:
    """Object storage backed by the stored_files table."""

    def __init__(self, db: Session):
        self.db = db

    def store_bytes(self, module: str, entity_id, file_name: str,
                    content: bytes, content_type: str = "application/octet-stream") -> str:
        stored = StoredFile(
            module_name=module,
            entity_id=entity_id,
            file_name=file_name[:255],
            file_type=content_type,
            file_data=content,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.db.add(stored)
        self.db.flush()
        logger.debug("Stored %s (%s bytes) for %s %s",
                     file_name, len(content), module, entity_id)
        return file_url(stored.id)

    def store_base64(self, module: str, entity_id, file_name: str,
                     data: str, content_type: str = "image/png") -> str:
        # accepts raw base64 or a data URL ("data:image/png;base64,....")
        if data.startswith("data:"):
            header, data = data.split(",", 1)
            content_type = header[5:].split(";")[0] or content_type
        try:
            content = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise PreconditionFailedError("Invalid base64 file content")
        return self.store_bytes(module, entity_id, file_name, content, content_type)

    def get(self, file_id):
        return self.db.query(StoredFile).filter(
            StoredFile.id == file_id,
            StoredFile.is_deleted == False
        ).first()
