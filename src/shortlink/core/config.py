from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal, Optional
import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("shortlink")

MAX_SHORTLINK_LENGTH = 64


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Settings can be overridden by environment variables or .env file.
    Variable names are case-insensitive, so both ``db_url`` and ``DB_URL`` work.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", validate_assignment=True)

    db_url: str = "urls.sqlite"
    port: int = 4567

    password: Optional[str] = None
    public_mode: bool = False
    session_max_age: int = 14 * 24 * 60 * 60

    redirect_method: Literal["PERMANENT", "TEMPORARY"] = "PERMANENT"
    site_url: Optional[str] = None

    short_code_length: int = Field(8, ge=1, le=MAX_SHORTLINK_LENGTH)
    max_generation_attempts: int = Field(10, ge=1)
    reserved_shortlinks: set[str] = {"api", "docs", "redoc", "static", "openapi.json"}

    log_level: str = "INFO"

    @field_validator("public_mode", mode="before")
    @classmethod
    def parse_public_mode(cls, value):
        # Accepts the "Enable"/"Disable" switch used by older deployments.
        if isinstance(value, str) and value.strip().lower() in ("enable", "disable"):
            return value.strip().lower() == "enable"
        return value

    @field_validator("redirect_method", mode="before")
    @classmethod
    def parse_redirect_method(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("password", "site_url", mode="before")
    @classmethod
    def empty_as_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to avoid loading .env file multiple times.
    """
    return Settings()
