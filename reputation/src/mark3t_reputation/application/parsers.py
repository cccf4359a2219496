"""Parsing helpers for contract gateway payloads."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from mark3t_reputation.domain.exceptions import MalformedResponseError
from mark3t_reputation.domain.rating import MAX_TIMESTAMP_MS, RatingRecord


class _RecordPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    purchase_id: int = Field(ge=0)
    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP_MS)
    buyer: int = Field(ge=0)
    subject_id: int = Field(ge=0, validation_alias=AliasChoices("subject_id", "seller_id"))
    article_id: int = Field(ge=0)
    article_score: int = Field(ge=1, le=5)
    shipping_score: int = Field(ge=1, le=5)
    seller_score: int = Field(ge=1, le=5, validation_alias=AliasChoices("seller_score", "communication_score"))
    remark: str | None = None


class _QueryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    value: dict[str, object] | None = None
    error: str | None = None


class _SendPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ok: bool
    tx_hash: str = ""
    dispatch_error: str | None = None


class _StoragePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str | None = None


_RECORDS_ADAPTER = TypeAdapter(list[_RecordPayload])


def parse_records(payload: object) -> tuple[RatingRecord, ...]:
    """Normalize a list of wire records into :class:`RatingRecord` values."""
    if payload is None:
        return ()
    try:
        parsed: Sequence[_RecordPayload] = _RECORDS_ADAPTER.validate_python(payload)
        return tuple(
            RatingRecord(
                purchase_ref=item.purchase_id,
                timestamp=item.timestamp,
                buyer_ref=item.buyer,
                subject_id=item.subject_id,
                article_ref=item.article_id,
                article_score=item.article_score,
                shipping_score=item.shipping_score,
                communication_score=item.seller_score,
                remark=item.remark,
            )
            for item in parsed
        )
    except (PydanticValidationError, ValueError) as exc:
        raise MalformedResponseError(f"ledger returned malformed rating records: {exc}") from exc


def parse_query_payload(payload: object) -> _QueryPayload:
    try:
        return _QueryPayload.model_validate(payload)
    except PydanticValidationError as exc:
        raise MalformedResponseError(f"ledger returned malformed query result: {exc}") from exc


def parse_send_payload(payload: object) -> _SendPayload:
    try:
        return _SendPayload.model_validate(payload)
    except PydanticValidationError as exc:
        raise MalformedResponseError(f"ledger returned malformed send receipt: {exc}") from exc


def parse_storage_payload(payload: object) -> bytes | None:
    try:
        parsed = _StoragePayload.model_validate(payload)
        if parsed.value is None:
            return None
        raw = parsed.value[2:] if parsed.value.startswith(("0x", "0X")) else parsed.value
        return bytes.fromhex(raw)
    except (PydanticValidationError, ValueError) as exc:
        raise MalformedResponseError(f"ledger returned malformed storage value: {exc}") from exc


__all__ = ["parse_query_payload", "parse_records", "parse_send_payload", "parse_storage_payload"]
