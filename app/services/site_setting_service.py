# app/services/site_setting_service.py
import time
from typing import Any

from sqlmodel import Session

from app.core.errors import Conflict, ValidationError
from app.models.site_setting import SiteSetting
from app.repositories.site_setting_repo import SiteSettingRepository
from app.schemas.site_setting import (
    ContactSettingsUpdate,
    HomeSettingsUpdate,
    SiteSettingsRead,
)

MAX_NEW_ARRIVALS_LIMIT = 100


class SiteSettingService:
    """
    Single accessor for site-wide settings (home ticker, contact info).

    Writes are compare-and-set on `version`: the caller sends the version
    it last read, and a stale version is a 409 instead of a silent
    overwrite.
    """

    def __init__(self, repo: SiteSettingRepository):
        self.repo = repo

    def get(self, session: Session) -> SiteSetting:
        row = self.repo.get(session)
        if row is None:
            row = self.repo.create_default(session)
        return row

    def read(self, session: Session) -> SiteSettingsRead:
        return SiteSettingsRead.model_validate(self.get(session), from_attributes=True)

    def update_home(self, session: Session, payload: HomeSettingsUpdate) -> SiteSettingsRead:
        stamp = int(time.time() * 1000)
        ticker: list[dict[str, Any]] = []
        for idx, item in enumerate(payload.ticker):
            text = (item.text or "").strip()
            if not text:
                continue
            ticker.append(
                {
                    "id": str(item.id or f"t_{stamp}_{idx}"),
                    "text": text,
                    "url": (item.url or "").strip(),
                    "start_at": item.start_at.isoformat() if item.start_at else None,
                    "end_at": item.end_at.isoformat() if item.end_at else None,
                    "priority": item.priority,
                }
            )

        values: dict[str, Any] = {"ticker": ticker}
        if payload.new_arrivals_limit is not None and payload.new_arrivals_limit > 0:
            values["new_arrivals_limit"] = min(MAX_NEW_ARRIVALS_LIMIT, payload.new_arrivals_limit)

        return self._write(session, payload.version, values)

    def update_contact(
        self,
        session: Session,
        payload: ContactSettingsUpdate,
    ) -> SiteSettingsRead:
        current = self.get(session)
        contact = dict(current.contact or {})
        changed = False

        if payload.phones is not None:
            contact["phones"] = [str(p).strip() for p in payload.phones]
            changed = True
        if payload.emails is not None:
            contact["emails"] = [str(e).strip() for e in payload.emails]
            changed = True
        if payload.address is not None:
            address = dict(contact.get("address") or {})
            for key, value in payload.address.model_dump(exclude_none=True).items():
                address[key] = value.strip()
                changed = True
            contact["address"] = address
        if payload.maps_url is not None:
            contact["maps_url"] = payload.maps_url.strip()
            changed = True

        if not changed:
            raise ValidationError("No valid fields supplied")

        return self._write(session, payload.version, {"contact": contact})

    def _write(
        self,
        session: Session,
        expected_version: int,
        values: dict[str, Any],
    ) -> SiteSettingsRead:
        self.get(session)
        if not self.repo.compare_and_set(session, expected_version, values):
            raise Conflict("Settings were changed by someone else; reload and retry")
        return self.read(session)
