# app/schemas/site_setting.py
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class TickerItem(SQLModel):
    id: str
    text: str
    url: str = ""
    start_at: datetime | None = None
    end_at: datetime | None = None
    priority: int = 0


class TickerItemIn(SQLModel):
    """
    Incoming ticker entry. Entries with blank text are dropped and a
    missing id is generated.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    text: str | None = None
    url: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    priority: int = 0


class HomeSettingsUpdate(SQLModel):
    version: int
    ticker: list[TickerItemIn] = []
    new_arrivals_limit: int | None = None


class ContactAddress(SQLModel):
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""


class ContactAddressIn(SQLModel):
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None


class ContactSettings(SQLModel):
    phones: list[str] = []
    emails: list[str] = []
    address: ContactAddress = Field(default_factory=ContactAddress)
    maps_url: str = ""


class ContactSettingsUpdate(SQLModel):
    version: int
    phones: list[str] | None = None
    emails: list[str] | None = None
    address: ContactAddressIn | None = None
    maps_url: str | None = None


class SiteSettingsRead(SQLModel):
    ticker: list[TickerItem]
    new_arrivals_limit: int
    contact: ContactSettings
    version: int
    updated_at: datetime
