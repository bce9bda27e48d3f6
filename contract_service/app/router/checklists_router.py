from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ..schemas.checklist_schemas import (
    ChecklistItemsUpdate, ChecklistLandlordSign, ChecklistNotesRequest, ChecklistPhotoOut,
    ChecklistPhotoUpload, ChecklistTemplateCreate, ChecklistTemplateOut, ChecklistTemplateUpdate,
    ChecklistTenantSign
)
from ..crud import checklist_crud as crud

router = APIRouter(
    prefix="/api/checklists",
    tags=["checklists"],
    dependencies=[Depends(validate_current_token)]
)


# ----------------- Templates -----------------

@router.get("/templates", response_model=List[ChecklistTemplateOut])
def get_templates(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_templates(db, current_user)


@router.post("/templates", response_model=None)
def create_template(
    payload: ChecklistTemplateCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    template = crud.create_template(db, payload, current_user)
    return success_response(data=template, message="Template created successfully",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.put("/templates/{template_id}", response_model=None)
def update_template(
    template_id: UUID,
    payload: ChecklistTemplateUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    template = crud.update_template(db, template_id, payload, current_user)
    return success_response(data=template, message="Template updated successfully",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.delete("/templates/{template_id}", response_model=None)
def delete_template(
    template_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.delete_template(db, template_id, current_user)


# ----------------- Checklist instance -----------------

@router.put("/{checklist_id}/items", response_model=None)
def update_items(
    checklist_id: UUID,
    payload: ChecklistItemsUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    checklist = crud.update_items(db, checklist_id, payload, current_user)
    return success_response(data=checklist, message="Checklist updated",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{checklist_id}/tenant-sign", response_model=None)
def tenant_sign(
    checklist_id: UUID,
    payload: ChecklistTenantSign,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    checklist = crud.tenant_sign(db, checklist_id, payload, current_user)
    return success_response(data=checklist, message="Checklist signed",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{checklist_id}/landlord-sign", response_model=None)
def landlord_sign(
    checklist_id: UUID,
    payload: ChecklistLandlordSign,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    checklist = crud.landlord_sign(db, checklist_id, payload, current_user)
    return success_response(data=checklist, message="Checklist completed",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.put("/{checklist_id}/notes", response_model=None)
def add_notes(
    checklist_id: UUID,
    payload: ChecklistNotesRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    checklist = crud.add_notes(db, checklist_id, payload.notes, current_user)
    return success_response(data=checklist, message="Notes saved",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{checklist_id}/photos", response_model=None)
def upload_photo(
    checklist_id: UUID,
    payload: ChecklistPhotoUpload,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    url = crud.upload_photo(db, checklist_id, payload, current_user)
    return success_response(data=ChecklistPhotoOut(url=url), message="Photo uploaded",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
