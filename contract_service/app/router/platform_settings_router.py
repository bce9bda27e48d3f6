from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ..schemas.notifications_schemas import PlatformSettingsOut, PlatformSettingsUpdate
from ..crud import settings_crud as crud
from ..crud.party_access import caller_id

router = APIRouter(
    prefix="/api/platform-settings",
    tags=["platform settings"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/", response_model=PlatformSettingsOut)
def get_platform_settings(db: Session = Depends(get_db)):
    return crud.get_settings(db)


@router.put("/", response_model=None)
def update_platform_settings(
    payload: PlatformSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    result = crud.update_settings(db, payload, caller_id(current_user))
    return success_response(data=result, message="Settings updated",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
