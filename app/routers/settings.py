# app/routers/settings.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.repositories.site_setting_repo import SiteSettingRepository
from app.schemas.common import Envelope, ok
from app.schemas.site_setting import SiteSettingsRead
from app.services.site_setting_service import SiteSettingService

router = APIRouter(prefix="/settings", tags=["Settings"])

service = SiteSettingService(SiteSettingRepository())


@router.get("", response_model=Envelope[SiteSettingsRead])
def get_site_settings(session: Session = Depends(get_session)):
    """
    Public site settings (ticker, new-arrivals limit, contact). Includes
    `version`, which admin edits must echo back.
    """
    return ok(service.read(session))
