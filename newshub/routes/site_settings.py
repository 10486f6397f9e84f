from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from newshub.db.session import get_db
from newshub.models.site_settings import SiteSettings
from newshub.schemas.site_settings import SiteSettingsResponse, SiteSettingsUpdate
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/settings", tags=["Settings"], dependencies=[Depends(require_admin)])


def get_or_create_settings(db: Session) -> SiteSettings:
    """Return the settings row, creating it with defaults on first use."""
    row = db.query(SiteSettings).order_by(SiteSettings.id.asc()).first()
    if row is None:
        row = SiteSettings()
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


@router.get("", response_model=SiteSettingsResponse)
@router.get("/", response_model=SiteSettingsResponse)
def read_settings(db: Session = Depends(get_db)):
    return SiteSettingsResponse(settings=get_or_create_settings(db))


@router.put("", response_model=SiteSettingsResponse)
@router.put("/", response_model=SiteSettingsResponse)
def update_settings(payload: SiteSettingsUpdate, db: Session = Depends(get_db)):
    row = get_or_create_settings(db)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, field, value)
    db.add(row)
    db.commit()
    db.refresh(row)
    return SiteSettingsResponse(settings=row, message="Settings updated successfully")
