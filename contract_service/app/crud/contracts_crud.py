import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import ForbiddenError, NotFoundError, PreconditionFailedError
from shared.core.schemas import UserToken
from shared.helpers.side_effects import PostCommitEffects
from shared.models.users import Users
from shared.utils.enums import PartyRole
from ..enum.contracts_enum import ContractStatus, PaymentStatus, PropertyStatus, RewardReason
from ..models.checklists import ChecklistTemplate, MoveInChecklist
from ..models.contracts import Contract
from ..models.payments import Payment
from ..models.properties import Property
from ..schemas.contracts_schemas import (
    ContractCreate, ContractListResponse, ContractOut, ContractRequest, ContractUpdate
)
from . import checklist_crud, documents_crud, notifications_crud, rewards_crud
from .party_access import (
    caller_id, get_contract_or_404, get_visible_contract, is_admin, require_landlord, require_party
)

logger = logging.getLogger(__name__)

STANDARD_TERMS = """RESIDENTIAL TENANCY AGREEMENT

1. SUBJECT. The landlord lets the dwelling described above to the tenant for use as the tenant's permanent home.

2. DURATION. The tenancy runs for the agreed period. Either party may give notice in line with applicable law.

3. RENT. Rent is payable monthly in advance and may be reviewed once a year in line with the consumer price index.

4. DEPOSIT. The tenant provides the agreed security deposit, held until the end of the tenancy.

5. OBLIGATIONS. The tenant keeps the dwelling in good condition and may not sublet without written consent.

6. TERMINATION. Breach of the obligations in this agreement entitles the other party to terminate it."""

EDITABLE_STATUSES = (ContractStatus.draft.value, ContractStatus.sent_to_tenant.value)
DELETABLE_STATUSES = (
    ContractStatus.draft.value,
    ContractStatus.sent_to_tenant.value,
    ContractStatus.tenant_signed.value,
)
CLOSED_STATUSES = (ContractStatus.terminated.value, ContractStatus.expired.value)
SETTLED_PAYMENT_STATUSES = (PaymentStatus.completed.value, PaymentStatus.refunded.value)


# ----------------------------------------------------
# Status derivation
# ----------------------------------------------------
def derive_contract_status(current: str, tenant_signed: bool, landlord_signed: bool,
                           keys_collected: bool) -> str:
    """Lifecycle status as a projection of the stored signature and key facts.

    terminated / expired are only ever set explicitly and stick. A landlord
    signature on its own does not move a contract out of draft/sent_to_tenant.
    """
    if current in CLOSED_STATUSES:
        return current
    if keys_collected:
        return ContractStatus.active.value
    if tenant_signed and landlord_signed:
        return ContractStatus.fully_signed.value
    if tenant_signed:
        return ContractStatus.tenant_signed.value
    return current


def refresh_contract_status(contract: Contract) -> str:
    contract.status = derive_contract_status(
        contract.status,
        bool(contract.tenant_signature),
        bool(contract.landlord_signature),
        bool(contract.keys_collected),
    )
    return contract.status


# ----------------------------------------------------
# Reads
# ----------------------------------------------------
def _checklist_status(db: Session, contract: Contract) -> Optional[str]:
    return db.query(MoveInChecklist.status).filter(
        MoveInChecklist.contract_id == contract.id).scalar()


def _to_out(db: Session, contract: Contract) -> ContractOut:
    out = ContractOut.model_validate(contract)
    out.checklist_status = _checklist_status(db, contract)
    if contract.property:
        out.property_title = contract.property.title
        out.property_address = contract.property.address
    return out


def get_list(db: Session, current_user: UserToken, params: ContractRequest) -> ContractListResponse:
    user_id = caller_id(current_user)

    if params.role == PartyRole.landlord.value:
        query = db.query(Contract).filter(Contract.landlord_id == user_id)
    elif params.role == PartyRole.tenant.value:
        query = db.query(Contract).filter(Contract.tenant_id == user_id)
    else:
        query = db.query(Contract).filter(
            or_(Contract.tenant_id == user_id, Contract.landlord_id == user_id))

    if params.status and params.status.lower() != "all":
        query = query.filter(Contract.status == params.status)

    if params.search:
        search_term = f"%{params.search}%"
        query = query.join(Property, Property.id == Contract.property_id).filter(
            or_(Property.title.ilike(search_term), Property.address.ilike(search_term)))

    total = query.with_entities(func.count(Contract.id)).scalar()
    contracts = query.order_by(Contract.created_at.desc()).offset(
        params.skip).limit(params.limit).all()

    return ContractListResponse(
        contracts=[_to_out(db, c) for c in contracts],
        total=total,
    )


def get_contract(db: Session, contract_id, current_user: UserToken) -> ContractOut:
    contract = get_visible_contract(db, contract_id, current_user)
    return _to_out(db, contract)


# ----------------------------------------------------
# Create / edit
# ----------------------------------------------------
def create_contract(db: Session, payload: ContractCreate, current_user: UserToken) -> ContractOut:
    landlord_id = caller_id(current_user)

    property_obj = db.query(Property).filter(
        Property.id == payload.property_id,
        Property.is_deleted == False
    ).first()
    if not property_obj:
        raise NotFoundError("Property not found")
    if property_obj.landlord_id != landlord_id:
        raise ForbiddenError("You can only create contracts for your own properties")

    tenant = db.query(Users).filter(
        Users.id == payload.tenant_id,
        Users.is_deleted == False
    ).first()
    if not tenant:
        raise NotFoundError("Tenant not found")
    if tenant.id == landlord_id:
        raise PreconditionFailedError("Landlord and tenant must be different users")

    status = (ContractStatus.sent_to_tenant.value if payload.send_immediately
              else ContractStatus.draft.value)
    now = datetime.now(timezone.utc)

    contract = Contract(
        id=uuid.uuid4(),
        property_id=property_obj.id,
        landlord_id=landlord_id,
        tenant_id=tenant.id,
        application_id=payload.application_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        monthly_rent=payload.monthly_rent,
        security_deposit=payload.security_deposit,
        currency=(payload.currency or settings.DEFAULT_CURRENCY).upper(),
        language=payload.language or tenant.language_preference or "en",
        terms=payload.terms or STANDARD_TERMS,
        special_conditions=payload.special_conditions,
        status=status,
        checklist_deadline=now + timedelta(days=settings.CHECKLIST_DEADLINE_DAYS),
    )
    db.add(contract)
    db.flush()

    # explicit template first, then the property's default
    template_id = payload.template_id or property_obj.default_checklist_template_id
    if template_id:
        template = db.query(ChecklistTemplate).filter(
            ChecklistTemplate.id == template_id,
            ChecklistTemplate.is_deleted == False
        ).first()
        if template:
            checklist_crud.attach_checklist(db, contract, template, now=now)
        else:
            logger.warning("Checklist template %s not found for contract %s",
                           template_id, contract.id)

    effects = PostCommitEffects()
    if payload.send_immediately:
        notifications_crud.notify_contract_sent(effects, db, contract)

    db.commit()
    db.refresh(contract)
    effects.run()
    return _to_out(db, contract)


def update_contract(db: Session, contract_id, payload: ContractUpdate,
                    current_user: UserToken) -> ContractOut:
    contract = get_contract_or_404(db, contract_id, lock=True)
    require_landlord(contract, current_user)
    if contract.status not in EDITABLE_STATUSES:
        raise PreconditionFailedError(
            "Contract can only be edited before the tenant signs")

    data = payload.model_dump(exclude_unset=True)
    for k, v in data.items():
        if v is not None:
            setattr(contract, k, v)
    if contract.end_date <= contract.start_date:
        raise PreconditionFailedError("end_date must be after start_date")

    db.commit()
    db.refresh(contract)
    return _to_out(db, contract)


# ----------------------------------------------------
# Lifecycle transitions
# ----------------------------------------------------
def send_to_tenant(db: Session, contract_id, current_user: UserToken) -> ContractOut:
    contract = get_contract_or_404(db, contract_id, lock=True)
    require_landlord(contract, current_user)
    if contract.status not in EDITABLE_STATUSES:
        raise PreconditionFailedError(
            f"Cannot send a contract that is {contract.status}")

    contract.status = ContractStatus.sent_to_tenant.value

    effects = PostCommitEffects()
    notifications_crud.notify_contract_sent(effects, db, contract)
    db.commit()
    db.refresh(contract)
    effects.run()
    return _to_out(db, contract)


def sign_contract(db: Session, contract_id, signature: str, current_user: UserToken) -> ContractOut:
    """Record the caller's signature; the role comes from the stored party ids."""
    contract = get_contract_or_404(db, contract_id, lock=True)
    role = require_party(contract, current_user)
    if contract.status in CLOSED_STATUSES:
        raise PreconditionFailedError(f"Cannot sign a contract that is {contract.status}")

    previous_status = contract.status
    now = datetime.now(timezone.utc)
    if role == PartyRole.tenant:
        contract.tenant_signature = signature
        contract.tenant_signed_at = now
    else:
        contract.landlord_signature = signature
        contract.landlord_signed_at = now

    # the row lock is held, so the other slot is current
    new_status = refresh_contract_status(contract)

    effects = PostCommitEffects()
    effects.add("regenerate_document",
                documents_crud.regenerate_contract_document, db, contract.id)
    if new_status == ContractStatus.fully_signed.value and previous_status != new_status:
        notifications_crud.notify_contract_fully_signed(effects, db, contract)
        effects.add("reward:contract_signed", rewards_crud.award,
                    db, contract.tenant_id, RewardReason.contract_signed, contract.id)
    elif role == PartyRole.tenant and new_status == ContractStatus.tenant_signed.value:
        notifications_crud.notify_contract_signed_by_tenant(effects, db, contract)

    db.commit()
    logger.info("Contract %s signed by %s, status %s -> %s",
                contract.id, role.value, previous_status, new_status)

    failed = effects.run()
    if failed:
        logger.warning("Contract %s signed but side effects failed: %s",
                       contract.id, ", ".join(failed))
    db.refresh(contract)
    return _to_out(db, contract)


def close_contract(db: Session, contract: Contract, status: ContractStatus, end_date=None):
    """Move a contract to terminated/expired and release the property.

    Does not commit. Only termination discards the move-in checklist.
    """
    contract.status = status.value
    if end_date is not None:
        contract.end_date = end_date

    property_obj = db.query(Property).filter(
        Property.id == contract.property_id).first()
    if property_obj:
        property_obj.status = PropertyStatus.active.value

    if status == ContractStatus.terminated:
        checklist_crud.delete_checklist_for_contract(db, contract)


def update_status(db: Session, contract_id, status: ContractStatus,
                  current_user: UserToken) -> ContractOut:
    if status == ContractStatus.sent_to_tenant:
        return send_to_tenant(db, contract_id, current_user)
    if status not in (ContractStatus.terminated, ContractStatus.expired):
        raise PreconditionFailedError(
            f"Status '{status.value}' follows from signatures and handover and cannot be set directly")

    contract = get_contract_or_404(db, contract_id, lock=True)
    if not is_admin(current_user):
        require_landlord(contract, current_user)
    if contract.status in CLOSED_STATUSES:
        raise PreconditionFailedError(f"Contract is already {contract.status}")

    close_contract(db, contract, status)

    effects = PostCommitEffects()
    notifications_crud.notify_contract_status_changed(effects, db, contract)
    db.commit()
    db.refresh(contract)
    logger.info("Contract %s set to %s", contract.id, status.value)
    effects.run()
    return _to_out(db, contract)


def delete_contract(db: Session, contract_id, current_user: UserToken):
    contract = get_contract_or_404(db, contract_id, lock=True)
    require_landlord(contract, current_user)
    if contract.status not in DELETABLE_STATUSES:
        raise ForbiddenError("Cannot delete a signed, active or closed contract")

    payments = db.query(Payment).filter(Payment.contract_id == contract.id).all()
    if any(p.status in SETTLED_PAYMENT_STATUSES for p in payments):
        raise ForbiddenError("Cannot delete a contract with settled payments")
    for payment in payments:
        db.delete(payment)

    checklist_crud.delete_checklist_for_contract(db, contract)
    db.delete(contract)
    db.commit()
    return {"success": True, "message": "Contract deleted successfully"}


def generate_document(db: Session, contract_id, current_user: UserToken) -> str:
    contract = get_contract_or_404(db, contract_id)
    require_party(contract, current_user)
    return documents_crud.regenerate_contract_document(db, contract.id)
