from datetime import timedelta

import pytest

from conftest import make_contract, make_user, token_for
from shared.core.exceptions import ForbiddenError, PreconditionFailedError, UpstreamFailureError
from contract_service.app.crud import contracts_crud, payments_crud, settings_crud
from contract_service.app.enum.contracts_enum import (
    ContractStatus, ObligationType, PaymentMethod, PaymentStatus
)
from contract_service.app.models.contracts import Contract
from contract_service.app.models.key_collections import KeyCollection
from contract_service.app.models.notifications import Notification
from contract_service.app.models.payments import Payment
from contract_service.app.schemas.notifications_schemas import PlatformSettingsUpdate


@pytest.fixture
def signed_contract(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))
    return contract


def _stored(db, contract_id):
    db.expire_all()
    return db.query(Contract).filter(Contract.id == contract_id).one()


def _succeeded_event(intent_id, amount, metadata):
    return {
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent_id, "amount": amount, "metadata": metadata}},
    }


# ----------------- Intent creation -----------------

def test_deposit_intent_freezes_fee_split(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))

    assert intent.amount == 120000
    assert intent.platform_fee == 6000
    assert intent.net_amount == 114000
    assert intent.client_secret == "pi_test_1_secret"

    payment = db.query(Payment).one()
    assert payment.status == PaymentStatus.pending.value
    assert payment.commission_percent == 5
    assert payment.payment_type == "deposit"

    metadata = gateway.intents[0]["metadata"]
    assert metadata["contract_id"] == str(signed_contract.id)
    assert metadata["type"] == "deposit"
    assert metadata["platform_fee"] == "6000"


def test_commission_change_does_not_touch_existing_payment(db, parties, signed_contract, gateway, admin):
    _, tenant, _ = parties
    payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))

    settings_crud.update_settings(
        db, PlatformSettingsUpdate(platform_commission_percentage=10), admin.id)
    rent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.first_month_rent, token_for(tenant))

    assert rent.platform_fee == 12000
    deposit = db.query(Payment).filter(Payment.payment_type == "deposit").one()
    assert deposit.platform_fee == 6000
    assert deposit.commission_percent == 5


def test_processor_failure_leaves_no_payment_row(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    gateway.fail = True
    with pytest.raises(UpstreamFailureError):
        payments_crud.create_payment_intent(
            db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    assert db.query(Payment).count() == 0


def test_only_tenant_creates_intents(db, parties, signed_contract, gateway):
    landlord, _, _ = parties
    with pytest.raises(ForbiddenError):
        payments_crud.create_payment_intent(
            db, gateway, signed_contract.id, ObligationType.deposit, token_for(landlord))


# ----------------- Client confirmation -----------------

def test_confirm_twice_is_idempotent(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    deposit = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    rent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.first_month_rent, token_for(tenant))

    payments_crud.confirm_payment(db, signed_contract.id, deposit.processor_reference, token_for(tenant))
    payments_crud.confirm_payment(db, signed_contract.id, rent.processor_reference, token_for(tenant))
    again = payments_crud.confirm_payment(
        db, signed_contract.id, rent.processor_reference, token_for(tenant))

    assert again.status == PaymentStatus.completed.value
    assert db.query(Payment).filter(
        Payment.status == PaymentStatus.completed.value).count() == 2
    assert db.query(KeyCollection).filter(
        KeyCollection.contract_id == signed_contract.id).count() == 1


def test_confirm_sets_contract_flags_and_notifies(db, parties, signed_contract, gateway):
    landlord, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    payments_crud.confirm_payment(db, signed_contract.id, intent.processor_reference, token_for(tenant))

    stored = _stored(db, signed_contract.id)
    assert stored.deposit_paid is True
    assert stored.deposit_payment_method == "stripe"
    assert stored.deposit_payment_reference == intent.processor_reference
    assert stored.first_month_rent_paid is False
    # still fully signed: handover has not happened
    assert stored.status == ContractStatus.fully_signed.value

    assert db.query(Notification).filter(
        Notification.user_id == tenant.id, Notification.title == "Payment successful").count() == 1
    assert db.query(Notification).filter(
        Notification.user_id == landlord.id, Notification.title == "Payment received").count() == 1


def test_paid_obligation_cannot_be_charged_again(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    payments_crud.confirm_payment(db, signed_contract.id, intent.processor_reference, token_for(tenant))

    with pytest.raises(PreconditionFailedError):
        payments_crud.create_payment_intent(
            db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))


# ----------------- Processor callbacks -----------------

def test_succeeded_callback_completes_payment_once(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    event = _succeeded_event(intent.processor_reference, intent.amount,
                             gateway.intents[0]["metadata"])

    assert payments_crud.handle_processor_event(db, event) == {"received": True}
    assert payments_crud.handle_processor_event(db, event) == {"received": True}

    payment = db.query(Payment).one()
    assert payment.status == PaymentStatus.completed.value
    assert _stored(db, signed_contract.id).deposit_paid is True
    assert db.query(Notification).filter(
        Notification.user_id == tenant.id, Notification.title == "Payment successful").count() == 1


def test_callback_falls_back_to_metadata_match(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.first_month_rent, token_for(tenant))
    payment = db.query(Payment).one()
    payment.processor_reference = None
    db.commit()

    event = _succeeded_event(intent.processor_reference, intent.amount,
                             gateway.intents[0]["metadata"])
    payments_crud.handle_processor_event(db, event)

    db.expire_all()
    payment = db.query(Payment).one()
    assert payment.status == PaymentStatus.completed.value
    assert payment.processor_reference == intent.processor_reference
    assert _stored(db, signed_contract.id).first_month_rent_paid is True


def test_metadata_match_respects_obligation_type(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    assert signed_contract.security_deposit == signed_contract.monthly_rent
    deposit = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.first_month_rent, token_for(tenant))
    deposit_row = db.query(Payment).filter(Payment.payment_type == "deposit").one()
    deposit_row.processor_reference = None
    db.commit()

    event = _succeeded_event(deposit.processor_reference, deposit.amount,
                             gateway.intents[0]["metadata"])
    payments_crud.handle_processor_event(db, event)

    db.expire_all()
    statuses = {p.payment_type: p.status for p in db.query(Payment).all()}
    assert statuses == {"deposit": PaymentStatus.completed.value,
                        "rent": PaymentStatus.pending.value}
    contract = _stored(db, signed_contract.id)
    assert contract.deposit_paid is True
    assert contract.first_month_rent_paid is False


def test_callback_with_mismatched_type_is_ignored(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    metadata = dict(gateway.intents[0]["metadata"], type="first_month_rent")

    payments_crud.handle_processor_event(
        db, _succeeded_event(intent.processor_reference, intent.amount, metadata))

    db.expire_all()
    assert db.query(Payment).one().status == PaymentStatus.pending.value
    contract = _stored(db, signed_contract.id)
    assert contract.deposit_paid is False
    assert contract.first_month_rent_paid is False


def test_failed_callback_marks_payment_failed(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    event = {
        "type": "payment_intent.payment_failed",
        "data": {"object": {"id": intent.processor_reference,
                            "last_payment_error": {"message": "Card declined"}}},
    }
    payments_crud.handle_processor_event(db, event)

    payment = db.query(Payment).one()
    assert payment.status == PaymentStatus.failed.value
    assert payment.failure_reason == "Card declined"
    assert _stored(db, signed_contract.id).deposit_paid is False


def test_unknown_intent_is_acknowledged(db):
    event = _succeeded_event("pi_unknown", 100, {})
    assert payments_crud.handle_processor_event(db, event) == {"received": True}


# ----------------- Manual settlement -----------------

def test_manual_settlement_converges_with_processor_path(db, parties, gateway):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))

    intent = payments_crud.create_payment_intent(
        db, gateway, contract.id, ObligationType.deposit, token_for(tenant))
    payments_crud.confirm_payment(db, contract.id, intent.processor_reference, token_for(tenant))
    result = payments_crud.pay_manually(
        db, contract.id, ObligationType.first_month_rent, PaymentMethod.bank_transfer,
        "TRX-42", token_for(landlord))

    assert result["success"] is True
    stored = _stored(db, contract.id)
    assert stored.first_month_rent_paid is True
    assert stored.first_month_rent_payment_method == "bank_transfer"
    assert stored.first_month_rent_payment_reference == "TRX-42"

    collection = db.query(KeyCollection).filter(KeyCollection.contract_id == contract.id).one()
    expected_day = contract.start_date - timedelta(days=1)
    assert collection.scheduled_at.date() == expected_day
    assert collection.scheduled_at.hour == 12
    assert collection.location == property_obj.address


def test_manual_settlement_twice_fails(db, parties, signed_contract):
    _, tenant, _ = parties
    payments_crud.pay_manually(
        db, signed_contract.id, ObligationType.deposit, PaymentMethod.cash, None, token_for(tenant))
    with pytest.raises(PreconditionFailedError):
        payments_crud.pay_manually(
            db, signed_contract.id, ObligationType.deposit, PaymentMethod.cash, None, token_for(tenant))


def test_outsider_cannot_settle_manually(db, signed_contract):
    outsider = make_user(db, "tenant")
    with pytest.raises(ForbiddenError):
        payments_crud.pay_manually(
            db, signed_contract.id, ObligationType.deposit, PaymentMethod.cash, None, token_for(outsider))


# ----------------- Refunds and reporting -----------------

def test_refund_only_completed_payments(db, parties, signed_contract, gateway):
    _, tenant, _ = parties
    intent = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    payment_id = intent.payment_id

    with pytest.raises(PreconditionFailedError):
        payments_crud.refund_payment(db, payment_id)

    payments_crud.confirm_payment(db, signed_contract.id, intent.processor_reference, token_for(tenant))
    refunded = payments_crud.refund_payment(db, payment_id)
    assert refunded.status == PaymentStatus.refunded.value
    assert refunded.refunded_at is not None


def test_landlord_stats_count_only_completed_net(db, parties, signed_contract, gateway):
    landlord, tenant, _ = parties
    deposit = payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.deposit, token_for(tenant))
    payments_crud.create_payment_intent(
        db, gateway, signed_contract.id, ObligationType.first_month_rent, token_for(tenant))
    payments_crud.confirm_payment(db, signed_contract.id, deposit.processor_reference, token_for(tenant))

    stats = payments_crud.get_landlord_stats(db, token_for(landlord))
    assert stats.total_earned == 114000
    assert stats.completed_count == 1
    assert stats.pending_amount == 114000
    assert stats.pending_count == 1

