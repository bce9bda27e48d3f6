import logging
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..enum.contracts_enum import RewardReason
from ..models.reward_transactions import RewardTransaction
from ..schemas.notifications_schemas import RewardSummary, RewardTransactionOut

logger = logging.getLogger(__name__)

REWARD_POINTS = {
    RewardReason.contract_signed: 20,
}


def award(db: Session, user_id, reason: RewardReason, reference_id=None) -> RewardTransaction:
    txn = RewardTransaction(
        user_id=user_id,
        points=REWARD_POINTS[reason],
        reason=reason.value,
        reference_id=reference_id,
    )
    db.add(txn)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Awarded %s points to %s for %s",
                txn.points, user_id, reason.value)
    return txn


def get_summary(db: Session, user_id) -> RewardSummary:
    balance = db.query(func.coalesce(func.sum(RewardTransaction.points), 0)).filter(
        RewardTransaction.user_id == user_id
    ).scalar()
    txns = db.query(RewardTransaction).filter(
        RewardTransaction.user_id == user_id
    ).order_by(RewardTransaction.created_at.desc()).all()
    return RewardSummary(
        balance=int(balance or 0),
        transactions=[RewardTransactionOut.model_validate(t) for t in txns],
    )
