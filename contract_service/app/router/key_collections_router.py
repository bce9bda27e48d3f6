from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ..schemas.key_collection_schemas import KeyCollectionCreate, KeyCollectionOut, KeyCollectionUpdate
from ..crud import key_collection_crud as crud

router = APIRouter(
    prefix="/api/key-collections",
    tags=["key collections"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/mine", response_model=List[KeyCollectionOut])
def get_my_key_collections(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_for_user(db, current_user)


@router.post("/", response_model=None)
def create_key_collection(
    payload: KeyCollectionCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    collection = crud.create_key_collection(db, payload, current_user)
    return success_response(data=collection, message="Key collection scheduled",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.put("/{collection_id}", response_model=None)
def update_key_collection(
    collection_id: UUID,
    payload: KeyCollectionUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    collection = crud.update_key_collection(db, collection_id, payload, current_user)
    return success_response(data=collection, message="Key collection updated",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{collection_id}/confirm", response_model=None)
def confirm_key_collection(
    collection_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    collection = crud.confirm_key_collection(db, collection_id, current_user)
    return success_response(data=collection, message="Key collection confirmed",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{collection_id}/complete", response_model=None)
def complete_key_collection(
    collection_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    collection = crud.complete_key_collection(db, collection_id, current_user)
    return success_response(data=collection, message="Keys handed over",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{collection_id}/cancel", response_model=None)
def cancel_key_collection(
    collection_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    collection = crud.cancel_key_collection(db, collection_id, current_user)
    return success_response(data=collection, message="Key collection cancelled",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
