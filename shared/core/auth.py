from datetime import datetime, timedelta, timezone
from uuid import UUID
from fastapi import status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from shared.models.users import Users
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import UserAccountType
from shared.core.config import settings
from shared.helpers.json_response_helper import error_response
from shared.core.schemas import UserToken
from shared.core.database import get_contract_db as get_db

security = HTTPBearer()


def create_access_token(data: dict, expires_minutes: int | None = None):
    payload = data.copy()

    minutes = expires_minutes or settings.JWT_EXPIRE_MINUTES
    payload['exp'] = datetime.now(timezone.utc) + timedelta(minutes=minutes)

    if 'name' not in payload and 'full_name' in payload:
        payload['name'] = payload['full_name']

    return jwt.encode(payload, settings.JWT_SECRET,
                      algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> UserToken:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET,
                             algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return error_response(
            message="Invalid or expired token",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_EXPIRED),
            http_status=status.HTTP_401_UNAUTHORIZED
        )

    user = UserToken(**payload)
    if not user.user_id:
        return error_response(
            message="Invalid token structure",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_INVALID),
            http_status=status.HTTP_401_UNAUTHORIZED
        )
    return user


def validate_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
):
    user_data = verify_token(credentials.credentials)

    try:
        user_id = UUID(str(user_data.user_id))
    except ValueError:
        return error_response(
            message="Invalid token structure",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_INVALID),
            http_status=status.HTTP_401_UNAUTHORIZED
        )

    user = db.query(Users).filter(
        Users.id == user_id,
        Users.is_deleted == False
    ).first()

    if not user:
        return error_response(
            message="User not found",
            status_code=str(AppStatusCode.AUTHENTICATION_USER_INVALID),
            http_status=404
        )

    if user.status.lower() != "active":
        return error_response(
            message="User is not active. Access denied",
            status_code=str(AppStatusCode.AUTHENTICATION_USER_INACTIVE),
            http_status=403
        )

    user_data.status = user.status
    user_data.account_type = user.account_type
    user_data.name = user_data.name or user.full_name
    return user_data


def allow_admin(current_user: UserToken = Depends(validate_current_token)):
    if current_user.account_type.lower() != UserAccountType.ADMIN.value:
        return error_response(
            message="Access forbidden: Admins only",
            status_code=str(AppStatusCode.AUTHORIZATION_FORBIDDEN),
            http_status=403
        )

    return current_user
