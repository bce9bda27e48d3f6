from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session

from shared.core.exceptions import ForbiddenError, NotFoundError
from shared.core.schemas import UserToken
from shared.utils.enums import PartyRole, UserAccountType
from ..models.contracts import Contract


def caller_id(current_user: UserToken) -> UUID:
    return UUID(str(current_user.user_id))


def is_admin(current_user: UserToken) -> bool:
    return (current_user.account_type or "").lower() == UserAccountType.ADMIN.value


def party_role(contract: Contract, user_id: UUID) -> Optional[PartyRole]:
    """Role of a user on a contract, derived only from the stored party ids."""
    if contract.tenant_id == user_id:
        return PartyRole.tenant
    if contract.landlord_id == user_id:
        return PartyRole.landlord
    return None


def require_party(contract: Contract, current_user: UserToken) -> PartyRole:
    role = party_role(contract, caller_id(current_user))
    if role is None:
        raise ForbiddenError("You are not a party to this contract")
    return role


def require_landlord(contract: Contract, current_user: UserToken):
    if contract.landlord_id != caller_id(current_user):
        raise ForbiddenError("Only the landlord can perform this action")


def require_tenant(contract: Contract, current_user: UserToken):
    if contract.tenant_id != caller_id(current_user):
        raise ForbiddenError("Only the tenant can perform this action")


def get_contract_or_404(db: Session, contract_id, lock: bool = False) -> Contract:
    query = db.query(Contract).filter(Contract.id == contract_id)
    if lock:
        query = query.with_for_update()
    contract = query.first()
    if not contract:
        raise NotFoundError("Contract not found")
    return contract


def get_visible_contract(db: Session, contract_id, current_user: UserToken) -> Contract:
    """Contract readable by either party or an admin."""
    contract = get_contract_or_404(db, contract_id)
    if not is_admin(current_user):
        require_party(contract, current_user)
    return contract
