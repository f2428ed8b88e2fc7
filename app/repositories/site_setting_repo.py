# app/repositories/site_setting_repo.py
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import update
from sqlmodel import Session

from app.models.site_setting import SITE_SETTING_ID, SiteSetting


class SiteSettingRepository:
    """
    Data access for the single site_settings row.
    """

    def get(self, session: Session) -> SiteSetting | None:
        return session.get(SiteSetting, SITE_SETTING_ID)

    def create_default(self, session: Session) -> SiteSetting:
        row = SiteSetting(id=SITE_SETTING_ID)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    def compare_and_set(
        self,
        session: Session,
        expected_version: int,
        values: dict[str, Any],
    ) -> bool:
        """
        Write `values` and bump the version, only if the stored version is
        still `expected_version`. Returns False when another writer won.
        """
        stmt = (
            update(SiteSetting)
            .where(
                SiteSetting.id == SITE_SETTING_ID,
                SiteSetting.version == expected_version,
            )
            .values(
                **values,
                version=SiteSetting.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        updated = session.exec(stmt).rowcount == 1
        session.commit()
        return updated
