import uuid

import pytest

from conftest import make_contract, make_user, token_for
from shared.core.exceptions import ForbiddenError, NotFoundError, PreconditionFailedError
from shared.models.stored_files import StoredFile
from contract_service.app.crud import contracts_crud, payments_crud
from contract_service.app.crud.contracts_crud import derive_contract_status
from contract_service.app.enum.contracts_enum import ContractStatus, ObligationType
from contract_service.app.models.checklists import ChecklistTemplate, MoveInChecklist
from contract_service.app.models.contracts import Contract
from contract_service.app.models.notifications import Notification
from contract_service.app.models.properties import Property
from contract_service.app.models.reward_transactions import RewardTransaction
from contract_service.app.schemas.contracts_schemas import ContractUpdate


def _template(db, landlord):
    template = ChecklistTemplate(
        landlord_id=landlord.id,
        name="Standard flat",
        items={"rooms": [{"room": "Kitchen", "items": [{"name": "Oven"}]}]},
    )
    db.add(template)
    db.commit()
    return template


# ----------------- Status derivation -----------------

@pytest.mark.parametrize("current, tenant, landlord, keys, expected", [
    ("draft", False, False, False, "draft"),
    ("sent_to_tenant", False, True, False, "sent_to_tenant"),
    ("sent_to_tenant", True, False, False, "tenant_signed"),
    ("tenant_signed", True, True, False, "fully_signed"),
    ("fully_signed", True, True, True, "active"),
    ("terminated", True, True, True, "terminated"),
    ("expired", True, True, False, "expired"),
])
def test_derive_contract_status(current, tenant, landlord, keys, expected):
    assert derive_contract_status(current, tenant, landlord, keys) == expected


# ----------------- Creation -----------------

def test_create_contract_defaults(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)

    assert contract.status == ContractStatus.draft.value
    assert contract.landlord_id == landlord.id
    assert contract.currency == "EUR"
    assert contract.terms.startswith("RESIDENTIAL TENANCY AGREEMENT")
    assert contract.property_title == property_obj.title


def test_create_contract_send_immediately_notifies_tenant(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj, send_immediately=True)

    assert contract.status == ContractStatus.sent_to_tenant.value
    notes = db.query(Notification).filter(Notification.user_id == tenant.id).all()
    assert len(notes) == 1
    assert notes[0].title == "New rental contract"


def test_create_contract_for_foreign_property_is_forbidden(db, parties):
    _, tenant, property_obj = parties
    other_landlord = make_user(db, "landlord")
    with pytest.raises(ForbiddenError):
        make_contract(db, other_landlord, tenant, property_obj)


def test_create_contract_with_self_as_tenant_fails(db, parties):
    landlord, _, property_obj = parties
    with pytest.raises(PreconditionFailedError):
        make_contract(db, landlord, landlord, property_obj)


def test_create_contract_uses_property_default_template(db, parties):
    landlord, tenant, property_obj = parties
    template = _template(db, landlord)
    property_obj.default_checklist_template_id = template.id
    db.commit()

    contract = make_contract(db, landlord, tenant, property_obj)

    checklist = db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).one()
    assert checklist.template_id == template.id
    assert contract.checklist_status == "draft"
    assert contract.checklist_deadline is not None


def test_update_contract_only_before_tenant_signs(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)

    updated = contracts_crud.update_contract(
        db, contract.id, ContractUpdate(monthly_rent=110000), token_for(landlord))
    assert updated.monthly_rent == 110000

    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    with pytest.raises(PreconditionFailedError):
        contracts_crud.update_contract(
            db, contract.id, ContractUpdate(monthly_rent=100000), token_for(landlord))


# ----------------- Signing -----------------

def test_tenant_then_landlord_reaches_fully_signed(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj, send_immediately=True)

    after_tenant = contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    assert after_tenant.status == ContractStatus.tenant_signed.value

    after_landlord = contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))
    assert after_landlord.status == ContractStatus.fully_signed.value


def test_landlord_then_tenant_reaches_fully_signed(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj, send_immediately=True)

    after_landlord = contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))
    assert after_landlord.status == ContractStatus.sent_to_tenant.value

    after_tenant = contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    assert after_tenant.status == ContractStatus.fully_signed.value

    stored = db.query(Contract).filter(Contract.id == contract.id).one()
    assert stored.landlord_signature == "Lucia"
    assert stored.tenant_signature == "Tomas"
    assert stored.landlord_signed_at is not None
    assert stored.tenant_signed_at is not None


def test_full_signature_regenerates_document_and_rewards_tenant(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)

    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    signed = contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))

    assert signed.contract_pdf_url.endswith(
        str(db.query(StoredFile).filter(StoredFile.is_deleted == False).one().id))
    rewards = db.query(RewardTransaction).filter(RewardTransaction.user_id == tenant.id).all()
    assert [r.points for r in rewards] == [20]
    titles = [n.title for n in db.query(Notification).filter(
        Notification.user_id == landlord.id).all()]
    assert "Contract fully signed" in titles


def test_document_failure_does_not_undo_signature(db, parties, monkeypatch):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)

    def broken_pdf(*args, **kwargs):
        raise RuntimeError("renderer down")
    monkeypatch.setattr(
        "contract_service.app.crud.documents_crud.generate_contract_pdf", broken_pdf)

    result = contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))

    assert result.status == ContractStatus.tenant_signed.value
    assert result.contract_pdf_url is None


def test_outsider_cannot_sign(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    outsider = make_user(db, "tenant")
    with pytest.raises(ForbiddenError):
        contracts_crud.sign_contract(db, contract.id, "x", token_for(outsider))


def test_closed_contract_cannot_be_signed(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    contracts_crud.update_status(db, contract.id, ContractStatus.expired, token_for(landlord))
    with pytest.raises(PreconditionFailedError):
        contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))


# ----------------- Status changes -----------------

def test_signature_states_cannot_be_set_directly(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    with pytest.raises(PreconditionFailedError):
        contracts_crud.update_status(
            db, contract.id, ContractStatus.fully_signed, token_for(landlord))


def _active_contract_with_checklist(db, landlord, tenant, property_obj):
    template = _template(db, landlord)
    contract = make_contract(db, landlord, tenant, property_obj, template_id=template.id)
    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))
    stored = db.query(Contract).filter(Contract.id == contract.id).one()
    stored.keys_collected = True
    contracts_crud.refresh_contract_status(stored)
    db.commit()
    assert stored.status == ContractStatus.active.value
    return stored


def test_terminate_releases_property_and_drops_checklist(db, parties):
    landlord, tenant, property_obj = parties
    contract = _active_contract_with_checklist(db, landlord, tenant, property_obj)

    result = contracts_crud.update_status(
        db, contract.id, ContractStatus.terminated, token_for(landlord))

    assert result.status == ContractStatus.terminated.value
    db.expire_all()
    assert db.query(Property).filter(Property.id == property_obj.id).one().status == "active"
    assert db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).count() == 0


def test_expire_releases_property_and_keeps_checklist(db, parties):
    landlord, tenant, property_obj = parties
    contract = _active_contract_with_checklist(db, landlord, tenant, property_obj)

    result = contracts_crud.update_status(
        db, contract.id, ContractStatus.expired, token_for(landlord))

    assert result.status == ContractStatus.expired.value
    db.expire_all()
    assert db.query(Property).filter(Property.id == property_obj.id).one().status == "active"
    assert db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).count() == 1


def test_admin_can_expire_contract(db, parties, admin):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    result = contracts_crud.update_status(
        db, contract.id, ContractStatus.expired, token_for(admin))
    assert result.status == ContractStatus.expired.value


def test_tenant_cannot_expire_contract(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    with pytest.raises(ForbiddenError):
        contracts_crud.update_status(
            db, contract.id, ContractStatus.expired, token_for(tenant))


# ----------------- Deletion -----------------

def test_delete_draft_removes_checklist(db, parties):
    landlord, tenant, property_obj = parties
    template = _template(db, landlord)
    contract = make_contract(db, landlord, tenant, property_obj, template_id=template.id)

    contracts_crud.delete_contract(db, contract.id, token_for(landlord))

    assert db.query(Contract).filter(Contract.id == contract.id).count() == 0
    assert db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).count() == 0


def test_delete_fully_signed_is_forbidden(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))

    with pytest.raises(ForbiddenError):
        contracts_crud.delete_contract(db, contract.id, token_for(landlord))


def test_delete_with_settled_payment_is_forbidden(db, parties, gateway):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    intent = payments_crud.create_payment_intent(
        db, gateway, contract.id, ObligationType.deposit, token_for(tenant))
    payments_crud.confirm_payment(
        db, contract.id, intent.processor_reference, token_for(tenant))

    with pytest.raises(ForbiddenError):
        contracts_crud.delete_contract(db, contract.id, token_for(landlord))


def test_tenant_cannot_delete(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    with pytest.raises(ForbiddenError):
        contracts_crud.delete_contract(db, contract.id, token_for(tenant))


def test_missing_contract_is_not_found(db, parties):
    landlord, _, _ = parties
    with pytest.raises(NotFoundError):
        contracts_crud.get_contract(db, uuid.uuid4(), token_for(landlord))
