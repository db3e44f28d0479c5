"""
Application settings, read from the environment and an optional .env file.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # ---------------------------
    # Application
    # ---------------------------
    APP_NAME: str = "storefront"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # ---------------------------
    # Document store (unset DATABASE_URL -> in-memory store)
    # ---------------------------
    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: str = "storefront"
    SEED_FILE: Optional[str] = None

    # ---------------------------
    # Identity verification
    # ---------------------------
    AUTH_SECRET: str = "change-me"
    AUTH_ALGORITHM: str = "HS256"
    AUTH_TOKEN_TTL_MINUTES: int = 60

    # ---------------------------
    # Listing
    # ---------------------------
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    SEARCH_THRESHOLD: float = 0.3
    PRODUCT_ID_WIDTH: int = 3

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
