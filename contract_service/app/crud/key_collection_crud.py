import logging
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import NotFoundError, PreconditionFailedError
from shared.core.schemas import UserToken
from shared.helpers.side_effects import PostCommitEffects
from shared.utils.enums import PartyRole
from ..enum.contracts_enum import ContractStatus, KeyCollectionStatus
from ..models.key_collections import KeyCollection
from ..schemas.key_collection_schemas import KeyCollectionCreate, KeyCollectionOut, KeyCollectionUpdate
from . import notifications_crud
from .contracts_crud import refresh_contract_status
from .party_access import caller_id, get_contract_or_404, get_visible_contract, require_party

logger = logging.getLogger(__name__)

CLOSED_CONTRACT_STATUSES = (ContractStatus.terminated.value, ContractStatus.expired.value)


def default_collection_time(start_date) -> datetime:
    """Handover proposal: the day before the lease starts, at the default hour."""
    day = start_date - timedelta(days=1)
    return datetime.combine(day, time(hour=settings.KEY_COLLECTION_DEFAULT_HOUR), tzinfo=timezone.utc)


def _existing_for_contract(db: Session, contract_id) -> Optional[KeyCollection]:
    return db.query(KeyCollection).filter(
        KeyCollection.contract_id == contract_id).first()


def check_and_schedule(db: Session, contract_id) -> Optional[KeyCollection]:
    """Propose a key handover once deposit and first month's rent are both paid.

    Safe to call any number of times: it does nothing unless both obligations
    are settled, keys are still outstanding and no key collection row exists
    for the contract (cancelled ones included).
    """
    contract = get_contract_or_404(db, contract_id, lock=True)

    if not (contract.deposit_paid and contract.first_month_rent_paid):
        db.rollback()
        return None
    if contract.keys_collected or contract.status in CLOSED_CONTRACT_STATUSES:
        db.rollback()
        return None
    if _existing_for_contract(db, contract.id) is not None:
        db.rollback()
        return None

    property_obj = contract.property
    collection = KeyCollection(
        contract_id=contract.id,
        landlord_id=contract.landlord_id,
        tenant_id=contract.tenant_id,
        scheduled_at=default_collection_time(contract.start_date),
        location=property_obj.address if property_obj else "",
        status=KeyCollectionStatus.scheduled.value,
    )
    db.add(collection)

    effects = PostCommitEffects()
    notifications_crud.notify_key_collection_scheduled(
        effects, db, contract, collection.scheduled_at)
    db.commit()
    db.refresh(collection)
    logger.info("Key collection %s auto-scheduled for contract %s",
                collection.id, contract.id)

    effects.run()
    return collection


def _get_collection_with_contract(db: Session, collection_id, lock: bool = False):
    query = db.query(KeyCollection).filter(KeyCollection.id == collection_id)
    if lock:
        query = query.with_for_update()
    collection = query.first()
    if not collection:
        raise NotFoundError("Key collection not found")
    contract = get_contract_or_404(db, collection.contract_id)
    return collection, contract


def get_by_contract(db: Session, contract_id, current_user: UserToken) -> Optional[KeyCollectionOut]:
    contract = get_visible_contract(db, contract_id, current_user)
    collection = _existing_for_contract(db, contract.id)
    return KeyCollectionOut.model_validate(collection) if collection else None


def get_for_user(db: Session, current_user: UserToken) -> List[KeyCollectionOut]:
    user_id = caller_id(current_user)
    rows = db.query(KeyCollection).filter(
        or_(KeyCollection.tenant_id == user_id,
            KeyCollection.landlord_id == user_id)
    ).order_by(KeyCollection.scheduled_at.asc()).all()
    return [KeyCollectionOut.model_validate(r) for r in rows]


def create_key_collection(db: Session, payload: KeyCollectionCreate,
                          current_user: UserToken) -> KeyCollectionOut:
    contract = get_contract_or_404(db, payload.contract_id, lock=True)
    require_party(contract, current_user)
    if contract.status in CLOSED_CONTRACT_STATUSES:
        raise PreconditionFailedError("Contract is no longer in force")
    if contract.keys_collected:
        raise PreconditionFailedError("Keys have already been collected")
    if _existing_for_contract(db, contract.id) is not None:
        raise PreconditionFailedError("A key collection already exists for this contract, reschedule it instead")

    collection = KeyCollection(
        contract_id=contract.id,
        landlord_id=contract.landlord_id,
        tenant_id=contract.tenant_id,
        scheduled_at=payload.scheduled_at,
        location=payload.location,
        notes=payload.notes,
        status=KeyCollectionStatus.scheduled.value,
    )
    db.add(collection)

    effects = PostCommitEffects()
    notifications_crud.notify_key_collection_scheduled(
        effects, db, contract, payload.scheduled_at)
    db.commit()
    db.refresh(collection)
    effects.run()
    return KeyCollectionOut.model_validate(collection)


def update_key_collection(db: Session, collection_id, payload: KeyCollectionUpdate,
                          current_user: UserToken) -> KeyCollectionOut:
    """Change time, place or notes. Updating a cancelled collection reopens it."""
    collection, contract = _get_collection_with_contract(db, collection_id, lock=True)
    require_party(contract, current_user)
    if collection.status == KeyCollectionStatus.completed.value:
        raise PreconditionFailedError(f"Key collection is {collection.status}")

    rescheduled = False
    if collection.status == KeyCollectionStatus.cancelled.value:
        if contract.status in CLOSED_CONTRACT_STATUSES:
            raise PreconditionFailedError("Contract is no longer in force")
        if contract.keys_collected:
            raise PreconditionFailedError("Keys have already been collected")
        rescheduled = True

    if payload.scheduled_at is not None and payload.scheduled_at != collection.scheduled_at:
        collection.scheduled_at = payload.scheduled_at
        rescheduled = True
    if payload.location is not None and payload.location != collection.location:
        collection.location = payload.location
        rescheduled = True
    if payload.notes is not None:
        collection.notes = payload.notes

    effects = PostCommitEffects()
    if rescheduled:
        # a new time or place needs both parties to agree again
        collection.landlord_confirmed = False
        collection.tenant_confirmed = False
        collection.status = KeyCollectionStatus.scheduled.value
        notifications_crud.notify_key_collection_scheduled(
            effects, db, contract, collection.scheduled_at, rescheduled=True)

    db.commit()
    db.refresh(collection)
    effects.run()
    return KeyCollectionOut.model_validate(collection)


def confirm_key_collection(db: Session, collection_id, current_user: UserToken) -> KeyCollectionOut:
    collection, contract = _get_collection_with_contract(db, collection_id, lock=True)
    role = require_party(contract, current_user)
    if collection.status not in (KeyCollectionStatus.scheduled.value, KeyCollectionStatus.confirmed.value):
        raise PreconditionFailedError(f"Key collection is {collection.status}")

    if role == PartyRole.landlord:
        collection.landlord_confirmed = True
    else:
        collection.tenant_confirmed = True

    effects = PostCommitEffects()
    if (collection.landlord_confirmed and collection.tenant_confirmed
            and collection.status != KeyCollectionStatus.confirmed.value):
        collection.status = KeyCollectionStatus.confirmed.value
        notifications_crud.notify_key_collection_confirmed(
            effects, db, contract, collection.scheduled_at)

    db.commit()
    db.refresh(collection)
    effects.run()
    return KeyCollectionOut.model_validate(collection)


def complete_key_collection(db: Session, collection_id, current_user: UserToken) -> KeyCollectionOut:
    collection, _ = _get_collection_with_contract(db, collection_id, lock=True)
    contract = get_contract_or_404(db, collection.contract_id, lock=True)
    require_party(contract, current_user)

    if collection.status != KeyCollectionStatus.confirmed.value:
        raise PreconditionFailedError("Both parties must confirm before keys are handed over")
    if contract.status in CLOSED_CONTRACT_STATUSES:
        raise PreconditionFailedError("Contract is no longer in force")
    if contract.status not in (ContractStatus.fully_signed.value, ContractStatus.active.value):
        raise PreconditionFailedError("Contract must be signed by both parties before handover")

    now = datetime.now(timezone.utc)
    collection.status = KeyCollectionStatus.completed.value
    collection.completed_at = now
    contract.keys_collected = True
    contract.keys_collected_at = now
    refresh_contract_status(contract)

    effects = PostCommitEffects()
    notifications_crud.notify_key_collection_completed(effects, db, contract)
    db.commit()
    db.refresh(collection)
    logger.info("Keys handed over for contract %s", contract.id)

    effects.run()
    return KeyCollectionOut.model_validate(collection)


def cancel_key_collection(db: Session, collection_id, current_user: UserToken) -> KeyCollectionOut:
    collection, contract = _get_collection_with_contract(db, collection_id, lock=True)
    require_party(contract, current_user)
    if collection.status not in (KeyCollectionStatus.scheduled.value, KeyCollectionStatus.confirmed.value):
        raise PreconditionFailedError(f"Key collection is {collection.status}")

    collection.status = KeyCollectionStatus.cancelled.value

    effects = PostCommitEffects()
    notifications_crud.notify_key_collection_cancelled(effects, db, contract)
    db.commit()
    db.refresh(collection)
    effects.run()
    return KeyCollectionOut.model_validate(collection)
