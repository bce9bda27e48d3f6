import copy
import uuid
from datetime import datetime, timedelta, timezone
from typing import List
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import ForbiddenError, NotFoundError, PreconditionFailedError
from shared.core.schemas import UserToken
from shared.helpers.side_effects import PostCommitEffects
from shared.utils.enums import PartyRole
from shared.utils.file_storage import FileStorage
from ..enum.contracts_enum import ChecklistStatus
from ..models.checklists import ChecklistTemplate, MoveInChecklist
from ..models.contracts import Contract
from ..schemas.checklist_schemas import (
    ChecklistItemsUpdate, ChecklistLandlordSign, ChecklistOut, ChecklistPhotoUpload,
    ChecklistTemplateCreate, ChecklistTemplateOut, ChecklistTemplateUpdate, ChecklistTenantSign
)
from . import notifications_crud
from .party_access import caller_id, get_contract_or_404, get_visible_contract, require_landlord, require_party, require_tenant

CHECKLIST_PHOTO_MODULE = "checklist_photo"


def sanitize_checklist_items(items) -> dict:
    """Copy room/item names from a template and reset every per-instance field.

    Accepts either a bare list of rooms or a {"rooms": [...]} document.
    """
    if isinstance(items, dict):
        rooms = items.get("rooms") or []
    elif isinstance(items, list):
        rooms = items
    else:
        rooms = []

    sanitized = []
    for room in rooms:
        if not isinstance(room, dict):
            continue
        clean_items = []
        for item in room.get("items") or []:
            name = item.get("name") if isinstance(item, dict) else item
            clean_items.append({
                "name": name,
                "condition": "",
                "notes": "",
                "photos": [],
            })
        sanitized.append({"room": room.get("room"), "items": clean_items})
    return {"rooms": sanitized}


def _rooms_document(rooms) -> dict:
    return {"rooms": [r.model_dump() for r in rooms]}


# ----------------------------------------------------
# Templates
# ----------------------------------------------------
def _get_template_or_404(db: Session, template_id) -> ChecklistTemplate:
    template = db.query(ChecklistTemplate).filter(
        ChecklistTemplate.id == template_id,
        ChecklistTemplate.is_deleted == False
    ).first()
    if not template:
        raise NotFoundError("Template not found")
    return template


def _get_owned_template(db: Session, template_id, current_user: UserToken) -> ChecklistTemplate:
    template = _get_template_or_404(db, template_id)
    if template.landlord_id != caller_id(current_user):
        raise ForbiddenError("Template belongs to another landlord")
    return template


def _clear_other_defaults(db: Session, landlord_id, keep_id):
    db.query(ChecklistTemplate).filter(
        ChecklistTemplate.landlord_id == landlord_id,
        ChecklistTemplate.id != keep_id,
        ChecklistTemplate.is_default == True
    ).update({"is_default": False}, synchronize_session=False)


def get_templates(db: Session, current_user: UserToken) -> List[ChecklistTemplateOut]:
    templates = db.query(ChecklistTemplate).filter(
        ChecklistTemplate.landlord_id == caller_id(current_user),
        ChecklistTemplate.is_deleted == False
    ).order_by(ChecklistTemplate.created_at.desc()).all()
    return [ChecklistTemplateOut.model_validate(t) for t in templates]


def create_template(db: Session, payload: ChecklistTemplateCreate, current_user: UserToken) -> ChecklistTemplateOut:
    template = ChecklistTemplate(
        id=uuid.uuid4(),
        landlord_id=caller_id(current_user),
        name=payload.name,
        property_type=payload.property_type,
        items=_rooms_document(payload.rooms),
        is_default=payload.is_default,
    )
    db.add(template)
    if payload.is_default:
        _clear_other_defaults(db, template.landlord_id, template.id)
    db.commit()
    db.refresh(template)
    return ChecklistTemplateOut.model_validate(template)


def update_template(db: Session, template_id, payload: ChecklistTemplateUpdate,
                    current_user: UserToken) -> ChecklistTemplateOut:
    template = _get_owned_template(db, template_id, current_user)

    data = payload.model_dump(exclude_unset=True, exclude={"rooms"})
    for k, v in data.items():
        if v is not None:
            setattr(template, k, v)
    if payload.rooms is not None:
        template.items = _rooms_document(payload.rooms)
    if payload.is_default:
        _clear_other_defaults(db, template.landlord_id, template.id)

    db.commit()
    db.refresh(template)
    return ChecklistTemplateOut.model_validate(template)


def delete_template(db: Session, template_id, current_user: UserToken):
    template = _get_owned_template(db, template_id, current_user)
    template.is_deleted = True
    template.is_default = False
    db.commit()
    return {"success": True, "message": "Template deleted successfully"}


# ----------------------------------------------------
# Linking checklists to contracts
# ----------------------------------------------------
def delete_checklist_for_contract(db: Session, contract: Contract):
    """Remove the contract's checklist inside the caller's transaction."""
    db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id
    ).delete(synchronize_session=False)
    contract.checklist_id = None
    contract.checklist_completed_at = None


def attach_checklist(db: Session, contract: Contract, template: ChecklistTemplate,
                     now: datetime = None) -> MoveInChecklist:
    """Replace the contract's checklist with a sanitized copy of the template.

    Does not commit. The template row is never modified.
    """
    now = now or datetime.now(timezone.utc)
    delete_checklist_for_contract(db, contract)
    db.flush()

    checklist = MoveInChecklist(
        id=uuid.uuid4(),
        contract_id=contract.id,
        template_id=template.id,
        items=sanitize_checklist_items(copy.deepcopy(template.items)),
        status=ChecklistStatus.draft.value,
    )
    db.add(checklist)

    contract.checklist_id = checklist.id
    if contract.checklist_deadline is None:
        contract.checklist_deadline = now + timedelta(days=settings.CHECKLIST_DEADLINE_DAYS)
    return checklist


def attach(db: Session, contract_id, template_id, current_user: UserToken):
    contract = get_contract_or_404(db, contract_id)
    require_landlord(contract, current_user)
    template = _get_template_or_404(db, template_id)

    checklist = attach_checklist(db, contract, template)
    db.commit()
    return {"checklist_id": checklist.id, "checklist_deadline": contract.checklist_deadline}


# ----------------------------------------------------
# Checklist instance
# ----------------------------------------------------
def _to_out(checklist: MoveInChecklist, contract: Contract) -> ChecklistOut:
    out = ChecklistOut.model_validate(checklist)
    out.deadline = contract.checklist_deadline
    return out


def _get_checklist_with_contract(db: Session, checklist_id):
    checklist = db.query(MoveInChecklist).filter(
        MoveInChecklist.id == checklist_id).first()
    if not checklist:
        raise NotFoundError("Checklist not found")
    contract = get_contract_or_404(db, checklist.contract_id)
    return checklist, contract


def get_by_contract(db: Session, contract_id, current_user: UserToken) -> ChecklistOut:
    contract = get_visible_contract(db, contract_id, current_user)
    checklist = db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).first()
    if not checklist:
        raise NotFoundError("No checklist attached to this contract")
    return _to_out(checklist, contract)


def update_items(db: Session, checklist_id, payload: ChecklistItemsUpdate,
                 current_user: UserToken) -> ChecklistOut:
    checklist, contract = _get_checklist_with_contract(db, checklist_id)
    require_tenant(contract, current_user)
    if checklist.status != ChecklistStatus.draft.value:
        raise PreconditionFailedError("Checklist can only be edited while in draft")

    checklist.items = _rooms_document(payload.rooms)
    db.commit()
    db.refresh(checklist)
    return _to_out(checklist, contract)


def tenant_sign(db: Session, checklist_id, payload: ChecklistTenantSign,
                current_user: UserToken) -> ChecklistOut:
    checklist, contract = _get_checklist_with_contract(db, checklist_id)
    require_tenant(contract, current_user)
    if checklist.status != ChecklistStatus.draft.value:
        raise PreconditionFailedError("Checklist has already been signed by the tenant")

    if payload.rooms is not None:
        checklist.items = _rooms_document(payload.rooms)
    if payload.notes is not None:
        checklist.tenant_notes = payload.notes
    checklist.tenant_signature = payload.signature
    checklist.tenant_signed_at = datetime.now(timezone.utc)
    checklist.status = ChecklistStatus.tenant_signed.value

    effects = PostCommitEffects()
    notifications_crud.notify_checklist_submitted(effects, db, contract)
    db.commit()
    effects.run()

    db.refresh(checklist)
    return _to_out(checklist, contract)


def landlord_sign(db: Session, checklist_id, payload: ChecklistLandlordSign,
                  current_user: UserToken) -> ChecklistOut:
    checklist, contract = _get_checklist_with_contract(db, checklist_id)
    require_landlord(contract, current_user)
    if checklist.status != ChecklistStatus.tenant_signed.value:
        raise PreconditionFailedError("The tenant must sign the checklist first")

    now = datetime.now(timezone.utc)
    if payload.notes is not None:
        checklist.landlord_notes = payload.notes
    checklist.landlord_signature = payload.signature
    checklist.landlord_signed_at = now
    checklist.status = ChecklistStatus.completed.value
    contract.checklist_completed_at = now

    effects = PostCommitEffects()
    notifications_crud.notify_checklist_completed(effects, db, contract)
    db.commit()
    effects.run()

    db.refresh(checklist)
    return _to_out(checklist, contract)


def add_notes(db: Session, checklist_id, notes: str, current_user: UserToken) -> ChecklistOut:
    checklist, contract = _get_checklist_with_contract(db, checklist_id)
    role = require_party(contract, current_user)
    if role == PartyRole.tenant:
        checklist.tenant_notes = notes
    else:
        checklist.landlord_notes = notes
    db.commit()
    db.refresh(checklist)
    return _to_out(checklist, contract)


def upload_photo(db: Session, checklist_id, payload: ChecklistPhotoUpload,
                 current_user: UserToken) -> str:
    checklist, contract = _get_checklist_with_contract(db, checklist_id)
    require_party(contract, current_user)
    if checklist.status == ChecklistStatus.completed.value:
        raise PreconditionFailedError("Checklist is already completed")

    file_name = payload.file_name or f"{payload.room}-{payload.item}.png"
    url = FileStorage(db).store_base64(
        CHECKLIST_PHOTO_MODULE, checklist.id, file_name, payload.image)

    # JSON column: reassign a modified copy so the change is tracked
    items = copy.deepcopy(checklist.items or {"rooms": []})
    for room in items.get("rooms", []):
        if room.get("room") != payload.room:
            continue
        for item in room.get("items", []):
            if item.get("name") == payload.item:
                item.setdefault("photos", []).append(url)
    checklist.items = items

    db.commit()
    return url
