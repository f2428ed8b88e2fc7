# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local dev)
      - SUPABASE_JWT_SECRET (JWT signing secret of the auth provider)

    Optional:
      - CORS_ORIGINS (JSON list)
      - STORE_NAME (shown on invoices and emails)
      - RESTOCK_ON_CANCEL (return stock to inventory when an order is cancelled)

    SMTP settings are read by app.core.email_client directly.
    """

    PROJECT_NAME: str = "Storefront Orders API"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    STORE_NAME: str = "UNI10"

    RESTOCK_ON_CANCEL: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
