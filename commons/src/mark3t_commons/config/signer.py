"""Signer selection settings."""

from __future__ import annotations

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SignerSettings(BaseSettings):
    """Where the sr25519 signing key comes from."""

    model_config = SettingsConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    mnemonic: SecretStr | None = Field(default=None, alias="SIGNER_MNEMONIC")
    uri: str | None = Field(default=None, alias="SIGNER_URI")

    @field_validator("mnemonic", mode="before")
    @classmethod
    def _normalize_mnemonic(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, SecretStr):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValueError("SIGNER_MNEMONIC must be a non-empty string when provided")
            return SecretStr(stripped)
        return value

    @field_validator("uri", mode="before")
    @classmethod
    def _normalize_uri(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @property
    def mnemonic_value(self) -> str | None:
        if self.mnemonic is None:
            return None
        return self.mnemonic.get_secret_value()

    @property
    def configured(self) -> bool:
        return self.mnemonic is not None or self.uri is not None


__all__ = ["SignerSettings"]
