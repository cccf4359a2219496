"""Port definitions for the remote reputation contract."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from mark3t_reputation.application.ports.signer import SignerPort

GET_ALL_RATINGS = "get_all_ratings"
GET_RATINGS_FOR_SUBJECT = "get_ratings_for_subject"
GET_SUBJECT_SCORE = "get_subject_score"
SUBMIT_RATING = "submit_rating"


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Dry-run result of a contract query message."""

    success: bool
    response: object | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class SendReceipt:
    """Result of a signed and submitted contract message."""

    ok: bool
    tx_hash: str = ""
    dispatch_error: str | None = None


class ReputationLedgerPort(Protocol):
    """Abstract client for the reputation contract (query/send/storage)."""

    async def query(
        self,
        method: str,
        *,
        origin: str,
        data: Mapping[str, object] | None = None,
    ) -> QueryResult:
        """Run a read-only contract message on behalf of ``origin``."""

    async def send(
        self,
        method: str,
        *,
        origin: str,
        data: Mapping[str, object],
        signer: SignerPort,
    ) -> SendReceipt:
        """Sign and submit a contract message; irrevocable once dispatched."""

    async def read_storage(self, key: bytes) -> bytes | None:
        """Return the raw value stored under ``key`` or ``None`` when absent."""

    async def aclose(self) -> None:
        """Release any held resources."""


__all__ = [
    "GET_ALL_RATINGS",
    "GET_RATINGS_FOR_SUBJECT",
    "GET_SUBJECT_SCORE",
    "QueryResult",
    "ReputationLedgerPort",
    "SUBMIT_RATING",
    "SendReceipt",
]
