from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ..schemas.termination_schemas import TerminationRespond
from ..crud import termination_crud as crud

router = APIRouter(
    prefix="/api/terminations",
    tags=["terminations"],
    dependencies=[Depends(validate_current_token)]
)


@router.post("/{request_id}/respond", response_model=None)
def respond_termination(
    request_id: UUID,
    payload: TerminationRespond,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    request = crud.respond_termination(db, request_id, payload, current_user)
    return success_response(data=request, message=f"Termination {request.status}",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
