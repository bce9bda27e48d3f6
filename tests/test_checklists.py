import base64

import pytest

from conftest import make_contract, make_user, token_for
from shared.core.exceptions import ForbiddenError, PreconditionFailedError
from shared.models.stored_files import StoredFile
from contract_service.app.crud import checklist_crud
from contract_service.app.crud.checklist_crud import sanitize_checklist_items
from contract_service.app.enum.contracts_enum import ChecklistStatus
from contract_service.app.models.checklists import ChecklistTemplate, MoveInChecklist
from contract_service.app.models.contracts import Contract
from contract_service.app.schemas.checklist_schemas import (
    ChecklistItemsUpdate, ChecklistLandlordSign, ChecklistPhotoUpload, ChecklistRoom,
    ChecklistTemplateCreate, ChecklistTemplateUpdate, ChecklistTenantSign
)

PREFILLED = {"rooms": [
    {"room": "Kitchen", "items": [
        {"name": "Oven", "condition": "scratched", "notes": "old tenant note",
         "photos": ["http://example/oven.png"]},
        {"name": "Fridge", "condition": "good", "notes": "", "photos": []},
    ]},
    {"room": "Bathroom", "items": [{"name": "Shower"}]},
]}


@pytest.fixture
def template(db, parties):
    landlord, _, _ = parties
    row = ChecklistTemplate(landlord_id=landlord.id, name="Flat", items=PREFILLED)
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def checklist(db, parties, template):
    landlord, tenant, property_obj = parties
    contract = make_contract(db, landlord, tenant, property_obj, template_id=template.id)
    return db.query(MoveInChecklist).filter(MoveInChecklist.contract_id == contract.id).one()


# ----------------- Sanitising -----------------

def test_sanitize_resets_instance_fields():
    result = sanitize_checklist_items(PREFILLED)
    for room in result["rooms"]:
        for item in room["items"]:
            assert item["condition"] == ""
            assert item["notes"] == ""
            assert item["photos"] == []
    assert [r["room"] for r in result["rooms"]] == ["Kitchen", "Bathroom"]
    assert [i["name"] for i in result["rooms"][0]["items"]] == ["Oven", "Fridge"]


def test_sanitize_accepts_bare_lists_and_names():
    result = sanitize_checklist_items([{"room": "Hall", "items": ["Mirror"]}])
    assert result == {"rooms": [{"room": "Hall", "items": [
        {"name": "Mirror", "condition": "", "notes": "", "photos": []}]}]}
    assert sanitize_checklist_items(None) == {"rooms": []}


def test_attach_copies_structure_and_leaves_template_untouched(db, template, checklist):
    item = checklist.items["rooms"][0]["items"][0]
    assert item == {"name": "Oven", "condition": "", "notes": "", "photos": []}

    db.expire_all()
    stored = db.query(ChecklistTemplate).filter(ChecklistTemplate.id == template.id).one()
    assert stored.items["rooms"][0]["items"][0]["condition"] == "scratched"


def test_reattach_replaces_checklist_and_keeps_deadline(db, parties, template, checklist):
    landlord, _, _ = parties
    contract = db.query(Contract).filter(Contract.id == checklist.contract_id).one()
    deadline = contract.checklist_deadline
    old_id = checklist.id

    result = checklist_crud.attach(db, contract.id, template.id, token_for(landlord))

    assert result["checklist_id"] != old_id
    assert db.query(MoveInChecklist).filter(MoveInChecklist.id == old_id).count() == 0
    assert db.query(MoveInChecklist).filter(
        MoveInChecklist.contract_id == contract.id).count() == 1
    db.expire_all()
    assert db.query(Contract).filter(Contract.id == contract.id).one().checklist_deadline == deadline


def test_only_landlord_attaches(db, parties, template, checklist):
    _, tenant, _ = parties
    with pytest.raises(ForbiddenError):
        checklist_crud.attach(db, checklist.contract_id, template.id, token_for(tenant))


# ----------------- Signing -----------------

def test_tenant_then_landlord_completes(db, parties, checklist):
    landlord, tenant, _ = parties
    rooms = [ChecklistRoom(room="Kitchen", items=[{"name": "Oven", "condition": "good"}])]

    signed = checklist_crud.tenant_sign(db, checklist.id, ChecklistTenantSign(
        signature="Tomas", rooms=rooms, notes="All fine"), token_for(tenant))
    assert signed.status == ChecklistStatus.tenant_signed.value
    assert signed.items["rooms"][0]["items"][0]["condition"] == "good"

    done = checklist_crud.landlord_sign(db, checklist.id, ChecklistLandlordSign(
        signature="Lucia", notes="Agreed"), token_for(landlord))
    assert done.status == ChecklistStatus.completed.value
    assert done.landlord_notes == "Agreed"

    db.expire_all()
    contract = db.query(Contract).filter(Contract.id == checklist.contract_id).one()
    assert contract.checklist_completed_at is not None


def test_landlord_cannot_sign_first(db, parties, checklist):
    landlord, _, _ = parties
    with pytest.raises(PreconditionFailedError):
        checklist_crud.landlord_sign(db, checklist.id, ChecklistLandlordSign(
            signature="Lucia"), token_for(landlord))


def test_items_locked_after_tenant_signs(db, parties, checklist):
    _, tenant, _ = parties
    checklist_crud.tenant_sign(db, checklist.id, ChecklistTenantSign(signature="Tomas"), token_for(tenant))
    with pytest.raises(PreconditionFailedError):
        checklist_crud.update_items(db, checklist.id, ChecklistItemsUpdate(rooms=[]), token_for(tenant))


def test_notes_go_to_the_callers_side(db, parties, checklist):
    landlord, tenant, _ = parties
    checklist_crud.add_notes(db, checklist.id, "tenant view", token_for(tenant))
    result = checklist_crud.add_notes(db, checklist.id, "landlord view", token_for(landlord))
    assert result.tenant_notes == "tenant view"
    assert result.landlord_notes == "landlord view"


def test_photo_upload_attaches_url_to_item(db, parties, checklist):
    _, tenant, _ = parties
    image = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()

    url = checklist_crud.upload_photo(db, checklist.id, ChecklistPhotoUpload(
        room="Kitchen", item="Oven", image=image), token_for(tenant))

    stored = db.query(StoredFile).one()
    assert url.endswith(f"/api/files/{stored.id}")
    assert stored.file_type == "image/png"
    db.expire_all()
    refreshed = db.query(MoveInChecklist).filter(MoveInChecklist.id == checklist.id).one()
    assert refreshed.items["rooms"][0]["items"][0]["photos"] == [url]


def test_photo_upload_rejects_bad_base64(db, parties, checklist):
    _, tenant, _ = parties
    with pytest.raises(PreconditionFailedError):
        checklist_crud.upload_photo(db, checklist.id, ChecklistPhotoUpload(
            room="Kitchen", item="Oven", image="not base64!!"), token_for(tenant))


# ----------------- Templates -----------------

def test_single_default_template_per_landlord(db, parties):
    landlord, _, _ = parties
    rooms = [ChecklistRoom(room="Hall", items=[{"name": "Door"}])]
    first = checklist_crud.create_template(db, ChecklistTemplateCreate(
        name="A", rooms=rooms, is_default=True), token_for(landlord))
    second = checklist_crud.create_template(db, ChecklistTemplateCreate(
        name="B", rooms=rooms, is_default=True), token_for(landlord))

    templates = {t.id: t for t in checklist_crud.get_templates(db, token_for(landlord))}
    assert templates[first.id].is_default is False
    assert templates[second.id].is_default is True


def test_template_owner_only(db, parties, template):
    other = make_user(db, "landlord")
    with pytest.raises(ForbiddenError):
        checklist_crud.update_template(db, template.id, ChecklistTemplateUpdate(
            name="Mine now"), token_for(other))


def test_deleted_template_is_hidden(db, parties, template):
    landlord, _, _ = parties
    checklist_crud.delete_template(db, template.id, token_for(landlord))
    assert checklist_crud.get_templates(db, token_for(landlord)) == []
