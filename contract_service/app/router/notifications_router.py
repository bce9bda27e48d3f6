from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ..schemas.notifications_schemas import NotificationListResponse, NotificationRequest, RewardSummary
from ..crud import notifications_crud as crud
from ..crud import rewards_crud
from ..crud.party_access import caller_id

router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=NotificationListResponse)
def get_notifications(
    params: NotificationRequest = Depends(),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_all_notifications(db, caller_id(current_user), params)


@router.put("/read-all", response_model=None)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    count = crud.mark_all_read(db, caller_id(current_user))
    return success_response(data={"updated": count}, message="Notifications marked as read",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.put("/{notification_id}/read", response_model=None)
def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    notification = crud.mark_read(db, caller_id(current_user), notification_id)
    return success_response(data=notification, message="Notification marked as read",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.get("/rewards", response_model=RewardSummary)
def get_rewards(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return rewards_crud.get_summary(db, caller_id(current_user))
