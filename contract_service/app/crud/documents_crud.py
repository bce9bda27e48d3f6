import logging
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from shared.core.exceptions import NotFoundError, UpstreamFailureError
from shared.models.stored_files import StoredFile
from shared.models.users import Users
from shared.utils.contract_pdf import generate_contract_pdf
from shared.utils.file_storage import FileStorage
from ..models.checklists import MoveInChecklist
from ..models.contracts import Contract

logger = logging.getLogger(__name__)

CONTRACT_PDF_MODULE = "contract_pdf"


def regenerate_contract_document(db: Session, contract_id) -> str:
    """Render the agreement (signatures and checklist included) and store it."""
    contract = db.query(Contract).filter(Contract.id == contract_id).first()
    if not contract:
        raise NotFoundError("Contract not found")

    landlord = db.query(Users).filter(Users.id == contract.landlord_id).first()
    tenant = db.query(Users).filter(Users.id == contract.tenant_id).first()
    checklist = db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).first()

    try:
        pdf_bytes = generate_contract_pdf(
            contract, contract.property, landlord, tenant, checklist)
    except Exception as e:
        logger.exception("PDF generation failed for contract %s", contract_id)
        raise UpstreamFailureError(f"Failed to generate contract document: {e}")

    # older renditions are superseded by the new one
    db.query(StoredFile).filter(
        StoredFile.module_name == CONTRACT_PDF_MODULE,
        StoredFile.entity_id == contract.id,
        StoredFile.is_deleted == False
    ).update({"is_deleted": True}, synchronize_session=False)

    url = FileStorage(db).store_bytes(
        CONTRACT_PDF_MODULE,
        contract.id,
        f"contract_{contract.id}.pdf",
        pdf_bytes,
        "application/pdf",
    )
    contract.contract_pdf_url = url
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Contract document regenerated for %s", contract_id)
    return url


def current_contract_document(db: Session, contract_id) -> Optional[Tuple[str, bytes]]:
    """Latest stored agreement as a (file_name, content) pair, if any."""
    stored = db.query(StoredFile).filter(
        StoredFile.module_name == CONTRACT_PDF_MODULE,
        StoredFile.entity_id == contract_id,
        StoredFile.is_deleted == False
    ).order_by(StoredFile.created_at.desc()).first()
    if not stored:
        return None
    return stored.file_name, stored.file_data
