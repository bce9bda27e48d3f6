from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ..schemas.contracts_schemas import (
    AttachChecklistRequest, ContractCreate, ContractDocumentOut, ContractListResponse, ContractOut,
    ContractRequest, ContractSign, ContractStatusUpdate, ContractUpdate
)
from ..schemas.checklist_schemas import ChecklistOut
from ..schemas.key_collection_schemas import KeyCollectionOut
from ..schemas.termination_schemas import TerminationCreate, TerminationOut
from ..crud import contracts_crud as crud
from ..crud import checklist_crud, key_collection_crud, termination_crud

router = APIRouter(
    prefix="/api/contracts",
    tags=["contracts"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=ContractListResponse)
def get_contracts(
    params: ContractRequest = Depends(),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_list(db, current_user, params)


@router.get("/{contract_id}", response_model=ContractOut)
def get_contract(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_contract(db, contract_id, current_user)


@router.post("/", response_model=None)
def create_contract(
    payload: ContractCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    contract = crud.create_contract(db, payload, current_user)
    return success_response(data=contract, message="Contract created successfully",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.put("/{contract_id}", response_model=None)
def update_contract(
    contract_id: UUID,
    payload: ContractUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    contract = crud.update_contract(db, contract_id, payload, current_user)
    return success_response(data=contract, message="Contract updated successfully",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.delete("/{contract_id}", response_model=None)
def delete_contract(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.delete_contract(db, contract_id, current_user)


@router.post("/{contract_id}/send", response_model=None)
def send_to_tenant(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    contract = crud.send_to_tenant(db, contract_id, current_user)
    return success_response(data=contract, message="Contract sent to tenant",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{contract_id}/sign", response_model=None)
def sign_contract(
    contract_id: UUID,
    payload: ContractSign,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    contract = crud.sign_contract(db, contract_id, payload.signature, current_user)
    return success_response(data=contract, message="Signature recorded",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.put("/{contract_id}/status", response_model=None)
def update_contract_status(
    contract_id: UUID,
    payload: ContractStatusUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    contract = crud.update_status(db, contract_id, payload.status, current_user)
    return success_response(data=contract, message=f"Contract is now {contract.status}",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{contract_id}/document", response_model=None)
def generate_document(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    url = crud.generate_document(db, contract_id, current_user)
    return success_response(data=ContractDocumentOut(contract_id=contract_id, url=url),
                            message="Contract document generated",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


# ----------------- Checklist -----------------

@router.post("/{contract_id}/checklist", response_model=None)
def attach_checklist(
    contract_id: UUID,
    payload: AttachChecklistRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    result = checklist_crud.attach(db, contract_id, payload.template_id, current_user)
    return success_response(data=result, message="Checklist attached",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.get("/{contract_id}/checklist", response_model=ChecklistOut)
def get_contract_checklist(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return checklist_crud.get_by_contract(db, contract_id, current_user)


# ----------------- Key collection -----------------

@router.get("/{contract_id}/key-collection", response_model=Optional[KeyCollectionOut])
def get_contract_key_collection(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return key_collection_crud.get_by_contract(db, contract_id, current_user)


# ----------------- Termination -----------------

@router.get("/{contract_id}/terminations", response_model=List[TerminationOut])
def get_terminations(
    contract_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return termination_crud.get_for_contract(db, contract_id, current_user)


@router.post("/{contract_id}/terminations", response_model=None)
def request_termination(
    contract_id: UUID,
    payload: TerminationCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    request = termination_crud.request_termination(db, contract_id, payload, current_user)
    return success_response(data=request, message="Termination requested",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
