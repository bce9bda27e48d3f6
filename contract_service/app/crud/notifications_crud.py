import logging
from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.helpers.email_helper import EmailHelper
from shared.helpers.side_effects import PostCommitEffects
from shared.core.exceptions import NotFoundError
from shared.models.users import Users
from shared.utils.contract_pdf import format_money
from ..enum.contracts_enum import NotificationKind
from ..models.contracts import Contract
from ..models.notifications import Notification
from ..schemas.notifications_schemas import (
    NotificationListResponse, NotificationOut, NotificationRequest
)
from . import documents_crud

logger = logging.getLogger(__name__)


def send_notification(db: Session, user_id, kind: NotificationKind, title: str,
                      message: str, link: str = None, email_helper: EmailHelper = None,
                      attachments=None):
    """Persist an in-app notification and mail a copy when possible."""
    user = db.query(Users).filter(Users.id == user_id).first()
    notification = Notification(
        user_id=user_id,
        type=kind.value,
        title=title,
        message=message,
        link=link,
    )
    db.add(notification)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    if user is None or not user.email:
        return notification

    helper = email_helper or EmailHelper()
    if helper.enabled:
        sent = helper.send_notification_email(
            recipients=[user.email],
            recipient_name=user.full_name or "there",
            title=title,
            message=message,
            link=link,
            attachments=attachments,
        )
        if sent:
            notification.is_email = True
            db.commit()
    return notification


def _queue(effects: PostCommitEffects, db: Session, user_id, kind, title, message, link):
    effects.add(f"notify:{kind.value}:{user_id}", send_notification,
                db, user_id, kind, title, message, link)


def _property_title(contract: Contract) -> str:
    return contract.property.title if contract.property else "the property"


def _full_name(db: Session, user_id, fallback: str) -> str:
    user = db.query(Users).filter(Users.id == user_id).first()
    return user.full_name if user and user.full_name else fallback


# ----------------------------------------------------
# Contract lifecycle
# ----------------------------------------------------
def notify_contract_sent(effects, db, contract: Contract):
    title = _property_title(contract)
    _queue(effects, db, contract.tenant_id, NotificationKind.contract,
           "New rental contract",
           f"You have received a rental contract for {title}. Please review and sign it.",
           "/tenant/contracts")
    _queue(effects, db, contract.landlord_id, NotificationKind.contract,
           "Contract sent",
           f"Your contract for {title} has been sent to the tenant.",
           "/landlord/contracts")


def notify_contract_signed_by_tenant(effects, db, contract: Contract):
    title = _property_title(contract)
    tenant_name = _full_name(db, contract.tenant_id, "The tenant")
    _queue(effects, db, contract.landlord_id, NotificationKind.contract,
           "Tenant signed the contract",
           f"{tenant_name} has signed the contract for {title}. Please add your signature.",
           "/landlord/contracts")
    _queue(effects, db, contract.tenant_id, NotificationKind.contract,
           "Signature received",
           f"Your signature for {title} was recorded. Waiting for the landlord to sign.",
           "/tenant/contracts")


def _send_with_contract_document(db: Session, user_id, contract_id, kind, title, message, link):
    # the agreement is regenerated by an earlier effect in the same batch
    document = documents_crud.current_contract_document(db, contract_id)
    return send_notification(db, user_id, kind, title, message, link,
                             attachments=[document] if document else None)


def notify_contract_fully_signed(effects, db, contract: Contract):
    title = _property_title(contract)
    effects.add(f"notify:contract:{contract.tenant_id}", _send_with_contract_document,
                db, contract.tenant_id, contract.id, NotificationKind.contract,
                "Contract fully signed",
                f"The contract for {title} is signed by both parties. "
                f"Pay the deposit and first month's rent to schedule key collection.",
                "/tenant/contracts")
    effects.add(f"notify:contract:{contract.landlord_id}", _send_with_contract_document,
                db, contract.landlord_id, contract.id, NotificationKind.contract,
                "Contract fully signed",
                f"The contract for {title} is signed by both parties.",
                "/landlord/contracts")


def notify_contract_status_changed(effects, db, contract: Contract):
    title = _property_title(contract)
    message = f"The contract for {title} is now {contract.status.replace('_', ' ')}."
    _queue(effects, db, contract.tenant_id, NotificationKind.contract,
           "Contract status updated", message, "/tenant/contracts")
    _queue(effects, db, contract.landlord_id, NotificationKind.contract,
           "Contract status updated", message, "/landlord/contracts")


# ----------------------------------------------------
# Payments
# ----------------------------------------------------
def notify_payment_completed(effects, db, user_id, amount: int, currency: str, description: str):
    _queue(effects, db, user_id, NotificationKind.payment,
           "Payment successful",
           f"Your payment of {format_money(amount, currency)} for {description} was completed.",
           "/tenant/payments")


def notify_payment_received(effects, db, contract: Contract, amount: int, description: str):
    tenant_name = _full_name(db, contract.tenant_id, "Your tenant")
    _queue(effects, db, contract.landlord_id, NotificationKind.payment,
           "Payment received",
           f"{tenant_name} paid {format_money(amount, contract.currency)} for {description}.",
           "/landlord/earnings")


# ----------------------------------------------------
# Key collection
# ----------------------------------------------------
def notify_key_collection_scheduled(effects, db, contract: Contract, scheduled_at, rescheduled=False):
    title = _property_title(contract)
    when = scheduled_at.strftime("%Y-%m-%d %H:%M")
    heading = "Key collection rescheduled" if rescheduled else "Key collection scheduled"
    message = f"Key collection for {title} is set for {when}. Please confirm the appointment."
    _queue(effects, db, contract.tenant_id, NotificationKind.key_collection,
           heading, message, "/tenant/keys")
    _queue(effects, db, contract.landlord_id, NotificationKind.key_collection,
           heading, message, "/landlord/keys")


def notify_key_collection_confirmed(effects, db, contract: Contract, scheduled_at):
    title = _property_title(contract)
    message = (f"Both parties confirmed key collection for {title} on "
               f"{scheduled_at.strftime('%Y-%m-%d %H:%M')}.")
    _queue(effects, db, contract.tenant_id, NotificationKind.key_collection,
           "Key collection confirmed", message, "/tenant/keys")
    _queue(effects, db, contract.landlord_id, NotificationKind.key_collection,
           "Key collection confirmed", message, "/landlord/keys")


def notify_key_collection_completed(effects, db, contract: Contract):
    title = _property_title(contract)
    _queue(effects, db, contract.tenant_id, NotificationKind.key_collection,
           "Welcome home",
           f"Keys for {title} were handed over. Your tenancy is now active.",
           "/tenant/my-home")
    _queue(effects, db, contract.landlord_id, NotificationKind.key_collection,
           "Keys handed over",
           f"Keys for {title} were handed over. The contract is now active.",
           "/landlord/properties")


def notify_key_collection_cancelled(effects, db, contract: Contract):
    title = _property_title(contract)
    message = f"The key collection appointment for {title} was cancelled."
    _queue(effects, db, contract.tenant_id, NotificationKind.key_collection,
           "Key collection cancelled", message, "/tenant/keys")
    _queue(effects, db, contract.landlord_id, NotificationKind.key_collection,
           "Key collection cancelled", message, "/landlord/keys")


# ----------------------------------------------------
# Termination requests
# ----------------------------------------------------
def notify_termination_requested(effects, db, contract: Contract, recipient_id, requester_name, desired_end_date):
    title = _property_title(contract)
    link = "/landlord/contracts" if recipient_id == contract.landlord_id else "/tenant/my-home"
    _queue(effects, db, recipient_id, NotificationKind.contract,
           "Termination requested",
           f"{requester_name} requested to end the contract for {title} on {desired_end_date}.",
           link)


def notify_termination_responded(effects, db, contract: Contract, recipient_id, approved: bool):
    title = _property_title(contract)
    link = "/landlord/contracts" if recipient_id == contract.landlord_id else "/tenant/my-home"
    outcome = "approved" if approved else "rejected"
    _queue(effects, db, recipient_id, NotificationKind.contract,
           f"Termination {outcome}",
           f"Your request to end the contract for {title} was {outcome}.",
           link)


# ----------------------------------------------------
# Checklist
# ----------------------------------------------------
def notify_checklist_submitted(effects, db, contract: Contract):
    tenant_name = _full_name(db, contract.tenant_id, "The tenant")
    _queue(effects, db, contract.landlord_id, NotificationKind.checklist,
           "Move-in checklist submitted",
           f"{tenant_name} signed the move-in checklist for {_property_title(contract)}. "
           f"Please review and counter-sign.",
           f"/landlord/checklist/{contract.id}")


def notify_checklist_completed(effects, db, contract: Contract):
    message = f"The move-in checklist for {_property_title(contract)} is complete."
    _queue(effects, db, contract.landlord_id, NotificationKind.checklist,
           "Move-in checklist completed", message,
           f"/landlord/checklist/{contract.id}")
    _queue(effects, db, contract.tenant_id, NotificationKind.checklist,
           "Move-in checklist completed", message,
           f"/tenant/checklist/{contract.id}")


# ----------------------------------------------------
# Reads
# ----------------------------------------------------
def get_all_notifications(db: Session, user_id, params: NotificationRequest) -> NotificationListResponse:
    notification_query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_deleted == False
    )

    if params.search:
        search_term = f"%{params.search}%"
        notification_query = notification_query.filter(
            Notification.title.ilike(search_term))

    unread = notification_query.filter(Notification.read == False).with_entities(
        func.count(Notification.id)).scalar()

    if params.unread_only:
        notification_query = notification_query.filter(Notification.read == False)

    total = notification_query.with_entities(
        func.count(Notification.id)).scalar()
    rows = notification_query.order_by(Notification.posted_date.desc()).offset(
        params.skip).limit(params.limit).all()

    return NotificationListResponse(
        notifications=[NotificationOut.model_validate(n) for n in rows],
        total=total,
        unread=unread,
    )


def mark_read(db: Session, user_id, notification_id) -> NotificationOut:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
        Notification.is_deleted == False
    ).first()
    if not notification:
        raise NotFoundError("Notification not found")

    notification.read = True
    db.commit()
    db.refresh(notification)
    return NotificationOut.model_validate(notification)


def mark_all_read(db: Session, user_id) -> int:
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read == False
    ).update({"read": True}, synchronize_session=False)
    db.commit()
    return count
