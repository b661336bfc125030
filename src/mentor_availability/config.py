"""Configuration for the mentor availability engine."""

from __future__ import annotations

from functools import lru_cache
import logging

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

from .enums import ConflictScope

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Runtime settings loaded from environment."""

    api_base_url: str = "https://api.mentorship.local"
    api_token: SecretStr = SecretStr("")
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Single fixed zone used for "is this slot in the past" checks
    operating_timezone: str = "Asia/Karachi"

    max_slot_duration_minutes: int = Field(default=60, gt=0, le=24 * 60)
    default_slot_start: str = "09:00"
    default_slot_length_minutes: int = Field(default=60, gt=0)
    lookahead_days: int = Field(default=28, gt=0)
    conflict_scope: ConflictScope = ConflictScope.WEEKDAY

    model_config = SettingsConfigDict(env_prefix="MENTOR_AVAILABILITY_", env_file=".env")

    @field_validator("operating_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown operating timezone: {v}") from exc
        return v

    @field_validator("default_slot_start")
    @classmethod
    def validate_default_start(cls, v: str) -> str:
        from .exceptions import MalformedTimeException
        from .time_utils import minutes_of

        try:
            minutes_of(v)
        except MalformedTimeException as exc:
            raise ValueError(exc.message) from exc
        return v

    @property
    def operating_tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.operating_timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    logger.debug(
        "Loaded availability settings (timezone=%s, max_slot=%s min, scope=%s)",
        settings.operating_timezone,
        settings.max_slot_duration_minutes,
        settings.conflict_scope.value,
    )
    return settings
