from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ctxlog.errors import ConfigurationError
from ctxlog.observability.exclusion import validate_pattern
from ctxlog.observability.levels import LogLevel


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", populate_by_name=True)

    service_name: str = Field(default="ctxlog", alias="SERVICE_NAME")
    log_level: LogLevel = Field(default=LogLevel.INFO, alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")
    exclude: tuple[str, ...] = Field(default=(), alias="LOG_EXCLUDE")

    correlation_header: str = Field(default="X-Correlation-Id", alias="CORRELATION_HEADER")
    request_id_header: str = Field(default="X-Request-Id", alias="REQUEST_ID_HEADER")
    response_header: str = Field(default="X-Correlation-Id", alias="RESPONSE_HEADER")

    log_request_completion: bool = Field(default=True, alias="LOG_REQUEST_COMPLETION")
    enrichment_timeout_s: float = Field(default=2.0, gt=0, alias="ENRICHMENT_TIMEOUT_S")

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return LogLevel.parse(value)
            except ValueError:
                allowed = ", ".join(level.value for level in LogLevel)
                raise ValueError(f"Invalid log level {value!r}. Allowed values: {allowed}.") from None
        return value

    @field_validator("exclude")
    @classmethod
    def _check_exclude(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        seen: list[str] = []
        for pattern in value:
            try:
                validate_pattern(pattern)
            except ConfigurationError as exc:
                raise ValueError(str(exc)) from None
            if pattern not in seen:
                seen.append(pattern)
        return tuple(seen)


def load_settings(**overrides: object) -> Settings:
    """Build settings eagerly; any validation problem is a ConfigurationError."""

    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid logging configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
