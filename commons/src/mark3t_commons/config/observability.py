"""Observability configuration shared by services."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilitySettings(BaseSettings):
    """Flags controlling logging/export behavior."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    log_json: bool = Field(default=False, alias="LOG_JSON")
    service_name: str = Field(default="mark3t-reputation", alias="OTEL_SERVICE_NAME")


__all__ = ["ObservabilitySettings"]
