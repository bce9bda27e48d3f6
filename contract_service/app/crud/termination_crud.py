import logging
from datetime import date, datetime, timezone
from typing import List
from sqlalchemy.orm import Session

from shared.core.exceptions import ForbiddenError, NotFoundError, PreconditionFailedError
from shared.core.schemas import UserToken
from shared.helpers.side_effects import PostCommitEffects
from ..enum.contracts_enum import ContractStatus, TerminationStatus
from ..models.contract_terminations import ContractTermination
from ..schemas.termination_schemas import TerminationCreate, TerminationOut, TerminationRespond
from . import notifications_crud
from .contracts_crud import close_contract
from .party_access import caller_id, get_contract_or_404, get_visible_contract, require_party

logger = logging.getLogger(__name__)

TERMINABLE_STATUSES = (ContractStatus.fully_signed.value, ContractStatus.active.value)


def request_termination(db: Session, contract_id, payload: TerminationCreate,
                        current_user: UserToken, today: date = None) -> TerminationOut:
    today = today or date.today()
    contract = get_contract_or_404(db, contract_id, lock=True)
    role = require_party(contract, current_user)

    if payload.desired_end_date <= today:
        raise PreconditionFailedError("Desired end date must be in the future")
    if contract.status not in TERMINABLE_STATUSES:
        raise PreconditionFailedError(
            "Only signed or active contracts can be terminated early")

    pending = db.query(ContractTermination).filter(
        ContractTermination.contract_id == contract.id,
        ContractTermination.status == TerminationStatus.pending.value
    ).first()
    if pending:
        raise PreconditionFailedError("A termination request is already pending")

    request = ContractTermination(
        contract_id=contract.id,
        requested_by=caller_id(current_user),
        requested_by_role=role.value,
        desired_end_date=payload.desired_end_date,
        reason=payload.reason,
        status=TerminationStatus.pending.value,
    )
    db.add(request)

    recipient = contract.tenant_id if request.requested_by == contract.landlord_id else contract.landlord_id
    effects = PostCommitEffects()
    notifications_crud.notify_termination_requested(
        effects, db, contract, recipient, current_user.name or "The other party",
        payload.desired_end_date)

    db.commit()
    db.refresh(request)
    effects.run()
    return TerminationOut.model_validate(request)


def respond_termination(db: Session, request_id, payload: TerminationRespond,
                        current_user: UserToken) -> TerminationOut:
    request = db.query(ContractTermination).filter(
        ContractTermination.id == request_id).with_for_update().first()
    if not request:
        raise NotFoundError("Termination request not found")

    contract = get_contract_or_404(db, request.contract_id, lock=True)
    require_party(contract, current_user)
    responder_id = caller_id(current_user)
    if responder_id == request.requested_by:
        raise ForbiddenError("Only the other party can respond to this request")
    if request.status != TerminationStatus.pending.value:
        raise PreconditionFailedError(f"Request has already been {request.status}")

    request.status = (TerminationStatus.approved.value if payload.approved
                      else TerminationStatus.rejected.value)
    request.responded_by = responder_id
    request.responded_at = datetime.now(timezone.utc)
    request.response_message = payload.message

    effects = PostCommitEffects()
    if payload.approved:
        if contract.status not in TERMINABLE_STATUSES:
            raise PreconditionFailedError(f"Contract is already {contract.status}")
        close_contract(db, contract, ContractStatus.terminated,
                       end_date=request.desired_end_date)
        notifications_crud.notify_contract_status_changed(effects, db, contract)
    notifications_crud.notify_termination_responded(
        effects, db, contract, request.requested_by, payload.approved)

    db.commit()
    db.refresh(request)
    logger.info("Termination request %s %s", request.id, request.status)
    effects.run()
    return TerminationOut.model_validate(request)


def get_for_contract(db: Session, contract_id, current_user: UserToken) -> List[TerminationOut]:
    contract = get_visible_contract(db, contract_id, current_user)
    rows = db.query(ContractTermination).filter(
        ContractTermination.contract_id == contract.id
    ).order_by(ContractTermination.created_at.desc()).all()
    return [TerminationOut.model_validate(r) for r in rows]
