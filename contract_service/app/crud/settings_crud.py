from datetime import datetime, timezone
from sqlalchemy.orm import Session

from shared.core.config import settings
from ..models.platform_settings import PlatformSettings
from ..schemas.notifications_schemas import PlatformSettingsOut, PlatformSettingsUpdate


def get_commission_percent(db: Session) -> int:
    """Current platform commission; read on every call, never cached."""
    row = db.query(PlatformSettings).first()
    if row is None or row.platform_commission_percentage is None:
        return settings.DEFAULT_PLATFORM_COMMISSION_PERCENT
    return row.platform_commission_percentage


def get_settings(db: Session) -> PlatformSettingsOut:
    row = db.query(PlatformSettings).first()
    if row is None:
        return PlatformSettingsOut(
            platform_commission_percentage=settings.DEFAULT_PLATFORM_COMMISSION_PERCENT)
    return PlatformSettingsOut(
        platform_commission_percentage=row.platform_commission_percentage,
        updated_at=row.updated_at,
    )


def update_settings(db: Session, payload: PlatformSettingsUpdate, user_id) -> PlatformSettingsOut:
    row = db.query(PlatformSettings).first()
    if row is None:
        row = PlatformSettings()
        db.add(row)

    row.platform_commission_percentage = payload.platform_commission_percentage
    row.updated_by = user_id
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    return PlatformSettingsOut(
        platform_commission_percentage=row.platform_commission_percentage,
        updated_at=row.updated_at,
    )
