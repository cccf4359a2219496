"""Shared contract gateway connectivity settings."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Configuration for the contract gateway and the reputation contract."""

    model_config = SettingsConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    gateway_url: str = Field(default="http://127.0.0.1:8300", alias="LEDGER_GATEWAY_URL")
    contract_address: str = Field(
        default="0x48550a4bb374727186c55365b7c9c0a1a31bdafe",
        alias="LEDGER_CONTRACT_ADDRESS",
    )
    query_origin: str = Field(default="", alias="LEDGER_QUERY_ORIGIN")
    timeout_seconds: float = Field(default=10.0, gt=0, alias="LEDGER_TIMEOUT_SECONDS")
    index_field: str = Field(
        default="mark3t_rep::Mark3tRep::transaction_per_entity",
        alias="LEDGER_INDEX_FIELD",
    )
    records_field: str = Field(
        default="mark3t_rep::Mark3tRep::ratings_per_transaction",
        alias="LEDGER_RECORDS_FIELD",
    )

    @field_validator("gateway_url", "contract_address", mode="before")
    @classmethod
    def _require_non_empty(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValueError("ledger gateway url and contract address must be non-empty")
            return stripped
        return value


__all__ = ["LedgerSettings"]
