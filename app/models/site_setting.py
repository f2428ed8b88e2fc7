# app/models/site_setting.py
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

SITE_SETTING_ID = 1

DEFAULT_NEW_ARRIVALS_LIMIT = 20


def default_contact() -> dict[str, Any]:
    return {
        "phones": [],
        "emails": [],
        "address": {
            "line1": "",
            "line2": "",
            "city": "",
            "state": "",
            "pincode": "",
        },
        "maps_url": "",
    }


class SiteSetting(SQLModel, table=True):
    """
    Site-wide settings stored as a single row (id=1).

    `version` increases by one on every write; writers must present the
    version they read (compare-and-set).
    """

    __tablename__ = "site_settings"

    id: int = Field(default=SITE_SETTING_ID, primary_key=True)

    ticker: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    new_arrivals_limit: int = Field(default=DEFAULT_NEW_ARRIVALS_LIMIT)

    contact: dict[str, Any] = Field(
        default_factory=default_contact,
        sa_column=Column(JSON, nullable=False),
    )

    version: int = Field(default=1)

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
