from datetime import date, timedelta

import pytest

from conftest import make_contract, token_for
from shared.core.exceptions import ForbiddenError, PreconditionFailedError
from contract_service.app.crud import contracts_crud, termination_crud
from contract_service.app.enum.contracts_enum import ContractStatus, TerminationStatus
from contract_service.app.models.contracts import Contract
from contract_service.app.models.notifications import Notification
from contract_service.app.models.properties import Property
from contract_service.app.schemas.termination_schemas import TerminationCreate, TerminationRespond


@pytest.fixture
def signed_contract(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    contracts_crud.sign_contract(db, contract.id, "Tomas", token_for(tenant))
    contracts_crud.sign_contract(db, contract.id, "Lucia", token_for(landlord))
    return contract


def _request(days=60):
    return TerminationCreate(reason="Relocating for work",
                             desired_end_date=date.today() + timedelta(days=days))


def test_request_notifies_other_party(db, parties, signed_contract):
    landlord, tenant, _ = parties
    request = termination_crud.request_termination(
        db, signed_contract.id, _request(), token_for(tenant))

    assert request.status == TerminationStatus.pending.value
    assert request.requested_by_role == "tenant"
    assert db.query(Notification).filter(
        Notification.user_id == landlord.id,
        Notification.title == "Termination requested").count() == 1


def test_end_date_must_be_in_the_future(db, parties, signed_contract):
    _, tenant, _ = parties
    with pytest.raises(PreconditionFailedError):
        termination_crud.request_termination(
            db, signed_contract.id, _request(days=0), token_for(tenant))


def test_unsigned_contract_cannot_be_terminated(db, parties):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj)
    with pytest.raises(PreconditionFailedError):
        termination_crud.request_termination(db, contract.id, _request(), token_for(tenant))


def test_one_pending_request_at_a_time(db, parties, signed_contract):
    landlord, tenant, _ = parties
    termination_crud.request_termination(db, signed_contract.id, _request(), token_for(tenant))
    with pytest.raises(PreconditionFailedError):
        termination_crud.request_termination(db, signed_contract.id, _request(), token_for(landlord))


def test_requester_cannot_answer_own_request(db, parties, signed_contract):
    _, tenant, _ = parties
    request = termination_crud.request_termination(
        db, signed_contract.id, _request(), token_for(tenant))
    with pytest.raises(ForbiddenError):
        termination_crud.respond_termination(
            db, request.id, TerminationRespond(approved=True), token_for(tenant))


def test_approval_terminates_contract(db, parties, signed_contract):
    landlord, tenant, property_obj = parties
    request = termination_crud.request_termination(
        db, signed_contract.id, _request(), token_for(tenant))

    answered = termination_crud.respond_termination(
        db, request.id, TerminationRespond(approved=True, message="Understood"), token_for(landlord))

    assert answered.status == TerminationStatus.approved.value
    db.expire_all()
    contract = db.query(Contract).filter(Contract.id == signed_contract.id).one()
    assert contract.status == ContractStatus.terminated.value
    assert contract.end_date == request.desired_end_date
    assert db.query(Property).filter(Property.id == property_obj.id).one().status == "active"


def test_rejection_keeps_contract(db, parties, signed_contract):
    landlord, tenant, _ = parties
    request = termination_crud.request_termination(
        db, signed_contract.id, _request(), token_for(landlord))

    answered = termination_crud.respond_termination(
        db, request.id, TerminationRespond(approved=False), token_for(tenant))

    assert answered.status == TerminationStatus.rejected.value
    db.expire_all()
    contract = db.query(Contract).filter(Contract.id == signed_contract.id).one()
    assert contract.status == ContractStatus.fully_signed.value
    assert len(termination_crud.get_for_contract(db, contract.id, token_for(tenant))) == 1
