import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.core.exceptions import NotFoundError, PreconditionFailedError
from shared.core.schemas import UserToken
from shared.helpers.side_effects import PostCommitEffects
from shared.utils.payment_gateway import PaymentGateway
from ..enum.contracts_enum import ObligationType, PaymentMethod, PaymentStatus, PaymentType
from ..models.contracts import Contract
from ..models.payments import Payment
from ..schemas.payments_schemas import (
    LandlordPaymentStats, PaymentIntentOut, PaymentListResponse, PaymentOut, PaymentRequest
)
from ...util.fee_calculator import compute_split
from . import key_collection_crud, notifications_crud, settings_crud
from .contracts_crud import CLOSED_STATUSES
from .party_access import caller_id, get_contract_or_404, require_party, require_tenant

logger = logging.getLogger(__name__)

PROCESSOR_METHOD = "stripe"


@dataclass(frozen=True)
class Obligation:
    payment_type: PaymentType
    amount_field: str
    flag_field: str
    description: str


OBLIGATIONS = {
    ObligationType.deposit: Obligation(
        PaymentType.deposit, "security_deposit", "deposit_paid", "Security Deposit"),
    ObligationType.first_month_rent: Obligation(
        PaymentType.rent, "monthly_rent", "first_month_rent_paid", "First Month Rent"),
}


def obligation_for_payment_type(payment_type: str) -> ObligationType:
    if payment_type == PaymentType.deposit.value:
        return ObligationType.deposit
    return ObligationType.first_month_rent


def is_obligation_settled(contract: Contract, obligation: ObligationType) -> bool:
    return bool(getattr(contract, OBLIGATIONS[obligation].flag_field))


def _apply_obligation_settled(contract: Contract, obligation: ObligationType, method: str,
                              reference: Optional[str], paid_at: datetime) -> bool:
    """Mark one escrow obligation paid on the contract. Returns False if it already was.

    Shared by processor confirmations and manual settlement.
    """
    if is_obligation_settled(contract, obligation):
        return False

    prefix = obligation.value
    setattr(contract, f"{prefix}_paid", True)
    setattr(contract, f"{prefix}_paid_at", paid_at)
    setattr(contract, f"{prefix}_payment_method", method)
    setattr(contract, f"{prefix}_payment_reference", reference)
    return True


def _ensure_payable(contract: Contract, obligation: ObligationType):
    if contract.status in CLOSED_STATUSES:
        raise PreconditionFailedError(f"Contract is {contract.status}")
    if is_obligation_settled(contract, obligation):
        raise PreconditionFailedError(
            f"{OBLIGATIONS[obligation].description} has already been paid")


def _run_after_settlement(db: Session, effects: PostCommitEffects, contract_id):
    """Post-commit tail shared by every settlement path."""
    effects.run()
    try:
        key_collection_crud.check_and_schedule(db, contract_id)
    except Exception:
        db.rollback()
        logger.exception("Key collection auto-schedule failed for contract %s", contract_id)


# ----------------------------------------------------
# Intent creation
# ----------------------------------------------------
def create_payment_intent(db: Session, gateway: PaymentGateway, contract_id,
                          obligation: ObligationType, current_user: UserToken) -> PaymentIntentOut:
    contract = get_contract_or_404(db, contract_id)
    require_tenant(contract, current_user)
    _ensure_payable(contract, obligation)

    rule = OBLIGATIONS[obligation]
    commission_percent = settings_crud.get_commission_percent(db)
    amount = getattr(contract, rule.amount_field)
    split = compute_split(amount, commission_percent)

    metadata = {
        "contract_id": str(contract.id),
        "tenant_id": str(contract.tenant_id),
        "landlord_id": str(contract.landlord_id),
        "type": obligation.value,
        "platform_fee": str(split.platform_fee),
        "net_amount": str(split.net_amount),
    }
    # raises UpstreamFailureError before anything is written
    intent = gateway.create_charge_intent(amount, contract.currency, metadata)

    payment = Payment(
        contract_id=contract.id,
        tenant_id=contract.tenant_id,
        landlord_id=contract.landlord_id,
        payment_type=rule.payment_type.value,
        amount=amount,
        platform_fee=split.platform_fee,
        net_amount=split.net_amount,
        commission_percent=commission_percent,
        currency=contract.currency,
        description=rule.description,
        status=PaymentStatus.pending.value,
        payment_method=PROCESSOR_METHOD,
        processor_reference=intent.id,
        due_date=datetime.now(timezone.utc),
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Payment intent %s created for contract %s (%s)",
                intent.id, contract.id, obligation.value)

    return PaymentIntentOut(
        payment_id=payment.id,
        client_secret=intent.client_secret,
        processor_reference=intent.id,
        amount=payment.amount,
        platform_fee=payment.platform_fee,
        net_amount=payment.net_amount,
        currency=payment.currency,
    )


# ----------------------------------------------------
# Settlement
# ----------------------------------------------------
def _settle_payment(db: Session, payment: Payment, processor_reference: str) -> PostCommitEffects:
    """Complete a locked payment row and its contract obligation. Does not commit."""
    effects = PostCommitEffects()
    now = datetime.now(timezone.utc)
    payment.status = PaymentStatus.completed.value
    payment.paid_at = now
    payment.processor_reference = processor_reference

    contract = get_contract_or_404(db, payment.contract_id, lock=True)
    obligation = obligation_for_payment_type(payment.payment_type)
    _apply_obligation_settled(contract, obligation, PROCESSOR_METHOD, processor_reference, now)

    description = OBLIGATIONS[obligation].description
    notifications_crud.notify_payment_completed(
        effects, db, payment.tenant_id, payment.amount, payment.currency, description)
    notifications_crud.notify_payment_received(
        effects, db, contract, payment.amount, description)
    return effects


def confirm_payment(db: Session, contract_id, processor_reference: str,
                    current_user: UserToken) -> PaymentOut:
    """Client-driven confirmation after the processor reported success."""
    contract = get_contract_or_404(db, contract_id)
    require_party(contract, current_user)

    payment = db.query(Payment).filter(
        Payment.contract_id == contract.id,
        Payment.processor_reference == processor_reference
    ).with_for_update().first()
    if not payment:
        raise NotFoundError("Payment not found")

    if payment.status == PaymentStatus.completed.value:
        db.rollback()
        return PaymentOut.model_validate(payment)
    if payment.status not in (PaymentStatus.pending.value, PaymentStatus.processing.value):
        raise PreconditionFailedError(f"Payment is {payment.status}")

    effects = _settle_payment(db, payment, processor_reference)
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s confirmed by client", payment.id)

    _run_after_settlement(db, effects, contract.id)
    return PaymentOut.model_validate(payment)


def _parse_uuid(value) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _payment_type_from_metadata(metadata: dict) -> Optional[str]:
    try:
        obligation = ObligationType(metadata.get("type"))
    except ValueError:
        return None
    return OBLIGATIONS[obligation].payment_type.value


def _find_payment_for_intent(db: Session, intent: dict) -> Optional[Payment]:
    metadata = intent.get("metadata") or {}
    payment_type = _payment_type_from_metadata(metadata)

    payment = db.query(Payment).filter(
        Payment.processor_reference == intent.get("id")
    ).with_for_update().first()
    if payment:
        if payment_type and payment.payment_type != payment_type:
            logger.warning("Intent %s is for %s but payment %s is %s",
                           intent.get("id"), metadata.get("type"),
                           payment.id, payment.payment_type)
            return None
        return payment

    # fall back to the pending row for the same contract, payer, obligation and amount
    contract_id = _parse_uuid(metadata.get("contract_id"))
    tenant_id = _parse_uuid(metadata.get("tenant_id"))
    if contract_id is None or tenant_id is None or payment_type is None:
        return None

    return db.query(Payment).filter(
        Payment.contract_id == contract_id,
        Payment.tenant_id == tenant_id,
        Payment.payment_type == payment_type,
        Payment.amount == intent.get("amount"),
        Payment.status == PaymentStatus.pending.value
    ).order_by(Payment.created_at.desc()).with_for_update().first()


def handle_intent_succeeded(db: Session, intent: dict) -> Optional[Payment]:
    payment = _find_payment_for_intent(db, intent)
    if payment is None:
        db.rollback()
        logger.warning("No payment found for succeeded intent %s", intent.get("id"))
        return None

    if payment.status == PaymentStatus.completed.value:
        db.rollback()
        logger.info("Duplicate success callback for payment %s ignored", payment.id)
        return payment
    if payment.status not in (PaymentStatus.pending.value, PaymentStatus.processing.value):
        db.rollback()
        logger.warning("Success callback for payment %s in status %s ignored",
                       payment.id, payment.status)
        return payment

    effects = _settle_payment(db, payment, intent.get("id"))
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s completed by processor callback", payment.id)

    _run_after_settlement(db, effects, payment.contract_id)
    return payment


def handle_intent_failed(db: Session, intent: dict) -> Optional[Payment]:
    payment = _find_payment_for_intent(db, intent)
    if payment is None or payment.status not in (
            PaymentStatus.pending.value, PaymentStatus.processing.value):
        db.rollback()
        return payment

    error = intent.get("last_payment_error") or {}
    payment.status = PaymentStatus.failed.value
    payment.failure_reason = error.get("message") or "Payment failed"
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s marked failed", payment.id)
    return payment


def handle_processor_event(db: Session, event: dict) -> dict:
    event_type = event.get("type")
    intent = (event.get("data") or {}).get("object") or {}

    if event_type == "payment_intent.succeeded":
        handle_intent_succeeded(db, intent)
    elif event_type == "payment_intent.payment_failed":
        handle_intent_failed(db, intent)
    else:
        logger.info("Unhandled processor event type: %s", event_type)
    return {"received": True}


def pay_manually(db: Session, contract_id, obligation: ObligationType, method: PaymentMethod,
                 reference: Optional[str], current_user: UserToken):
    """Record an off-platform payment (cash, bank transfer) for one obligation."""
    contract = get_contract_or_404(db, contract_id, lock=True)
    require_party(contract, current_user)
    _ensure_payable(contract, obligation)

    _apply_obligation_settled(
        contract, obligation, method.value, reference, datetime.now(timezone.utc))

    rule = OBLIGATIONS[obligation]
    amount = getattr(contract, rule.amount_field)
    effects = PostCommitEffects()
    notifications_crud.notify_payment_completed(
        effects, db, contract.tenant_id, amount, contract.currency, rule.description)
    notifications_crud.notify_payment_received(
        effects, db, contract, amount, rule.description)

    db.commit()
    logger.info("Contract %s %s settled manually via %s",
                contract.id, obligation.value, method.value)

    _run_after_settlement(db, effects, contract.id)
    return {"success": True, "message": f"{rule.description} recorded"}


def refund_payment(db: Session, payment_id) -> PaymentOut:
    payment = db.query(Payment).filter(
        Payment.id == payment_id).with_for_update().first()
    if not payment:
        raise NotFoundError("Payment not found")
    if payment.status != PaymentStatus.completed.value:
        raise PreconditionFailedError("Only completed payments can be refunded")

    payment.status = PaymentStatus.refunded.value
    payment.refunded_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s refunded", payment.id)
    return PaymentOut.model_validate(payment)


# ----------------------------------------------------
# Reads
# ----------------------------------------------------
def _list(db: Session, query, params: PaymentRequest) -> PaymentListResponse:
    if params.status and params.status.lower() != "all":
        query = query.filter(Payment.status == params.status)
    if params.contract_id:
        query = query.filter(Payment.contract_id == params.contract_id)

    total = query.with_entities(func.count(Payment.id)).scalar()
    rows = query.order_by(Payment.created_at.desc()).offset(
        params.skip).limit(params.limit).all()
    return PaymentListResponse(
        payments=[PaymentOut.model_validate(p) for p in rows], total=total)


def get_tenant_payments(db: Session, current_user: UserToken, params: PaymentRequest) -> PaymentListResponse:
    return _list(db, db.query(Payment).filter(
        Payment.tenant_id == caller_id(current_user)), params)


def get_landlord_payments(db: Session, current_user: UserToken, params: PaymentRequest) -> PaymentListResponse:
    return _list(db, db.query(Payment).filter(
        Payment.landlord_id == caller_id(current_user)), params)


def get_landlord_stats(db: Session, current_user: UserToken) -> LandlordPaymentStats:
    landlord_id = caller_id(current_user)

    def _sum_and_count(status: PaymentStatus):
        total, count = db.query(
            func.coalesce(func.sum(Payment.net_amount), 0),
            func.count(Payment.id)
        ).filter(
            Payment.landlord_id == landlord_id,
            Payment.status == status.value
        ).one()
        return int(total or 0), int(count or 0)

    earned, completed_count = _sum_and_count(PaymentStatus.completed)
    pending, pending_count = _sum_and_count(PaymentStatus.pending)
    return LandlordPaymentStats(
        total_earned=earned,
        pending_amount=pending,
        completed_count=completed_count,
        pending_count=pending_count,
    )
