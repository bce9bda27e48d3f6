from uuid import UUID
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.exceptions import NotFoundError
from shared.utils.file_storage import FileStorage

# stored file ids are unguessable and shared as links (PDFs, photos)
router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("/{file_id}")
def download_file(file_id: UUID, db: Session = Depends(get_db)):
    stored = FileStorage(db).get(file_id)
    if not stored:
        raise NotFoundError("File not found")

    return Response(
        content=stored.file_data,
        media_type=stored.file_type or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{stored.file_name}"'},
    )
