"""Rating query and aggregation pipeline."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from mark3t_reputation.application.dto.config import ReputationClientConfig
from mark3t_reputation.application.parsers import parse_records
from mark3t_reputation.application.ports.labels import LabelResolver
from mark3t_reputation.application.ports.ledger import (
    GET_ALL_RATINGS,
    GET_RATINGS_FOR_SUBJECT,
    GET_SUBJECT_SCORE,
    ReputationLedgerPort,
)
from mark3t_reputation.domain.entity_id import record_key, subject_index_key
from mark3t_reputation.domain.exceptions import (
    MalformedResponseError,
    NotFoundError,
    QueryUnavailableError,
    RemoteRejection,
    ReputationError,
)
from mark3t_reputation.domain.rating import (
    Rating,
    RatingRecord,
    RatingSummary,
    aggregate,
    aggregate_by_subject,
    ledger_score_to_stars,
    to_display,
)
from mark3t_reputation.domain.scale import (
    ScaleDecodeError,
    decode_purchase_index,
    decode_record,
)

logger = logging.getLogger("mark3t_reputation.query")


class QueryState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RatingFetchResult:
    """Display ratings of one fetch plus the error that ended it, if any.

    An empty ``ratings`` tuple with ``error`` unset means the subject has no
    ratings; a set ``error`` means the fetch failed.
    """

    generation: int
    subject_filter: int | None
    ratings: tuple[Rating, ...] = ()
    records: tuple[RatingRecord, ...] = ()
    error: str | None = None
    summary: RatingSummary = field(default_factory=RatingSummary.empty)
    summaries: Mapping[int, RatingSummary] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Contract-side score in stars; ``score`` is ``None`` when the contract has none."""

    subject_id: int
    score: float | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class RatingQueryService:
    """Fetches rating records and turns them into display ratings.

    Every fetch gets a generation number. Only the newest generation updates
    :attr:`state` and :attr:`ratings`; older responses are still returned to
    their caller, who can check :meth:`is_current` before using them.
    """

    def __init__(
        self,
        *,
        ledger: ReputationLedgerPort,
        config: ReputationClientConfig,
        label_resolver: LabelResolver,
    ) -> None:
        self._ledger = ledger
        self._config = config
        self._label_resolver = label_resolver
        self._generations = itertools.count(1)
        self._latest_generation = 0
        self._state = QueryState.IDLE
        self._ratings: tuple[Rating, ...] = ()
        self._error: str | None = None

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def ratings(self) -> tuple[Rating, ...]:
        """Ratings of the last successful current fetch."""
        return self._ratings

    @property
    def error(self) -> str | None:
        return self._error

    def is_current(self, generation: int) -> bool:
        return generation == self._latest_generation

    async def fetch(self, subject_filter: int | None = None) -> RatingFetchResult:
        generation = next(self._generations)
        self._latest_generation = generation
        self._state = QueryState.LOADING
        self._error = None

        try:
            records = await self._load_records(subject_filter)
            ratings = to_display(records, self._label_resolver)
        except ReputationError as exc:
            return self._failed(generation, subject_filter, exc)
        except Exception as exc:
            logger.exception(
                "rating display conversion failed",
                extra={"data": {"generation": generation, "subject_filter": subject_filter}},
            )
            return self._failed(generation, subject_filter, ReputationError(f"could not display ratings: {exc}"))

        result = RatingFetchResult(
            generation=generation,
            subject_filter=subject_filter,
            ratings=ratings,
            records=records,
            summary=aggregate(records),
            summaries=aggregate_by_subject(records),
        )
        if self.is_current(generation):
            self._state = QueryState.LOADED
            self._ratings = ratings
        else:
            logger.debug(
                "discarding stale rating fetch",
                extra={"data": {"generation": generation, "latest": self._latest_generation}},
            )
        logger.debug(
            "fetched ratings",
            extra={"data": {"generation": generation, "subject_filter": subject_filter, "count": len(ratings)}},
        )
        return result

    async def fetch_score(self, subject_id: int) -> ScoreResult:
        """Return the contract's cached score for ``subject_id`` in stars."""
        try:
            score = await self._load_score(subject_id)
        except ReputationError as exc:
            logger.warning(
                "subject score fetch failed",
                extra={"data": {"subject_id": subject_id, "error_type": type(exc).__name__, "error": exc.message}},
            )
            return ScoreResult(subject_id=subject_id, error=exc.message)
        return ScoreResult(subject_id=subject_id, score=score)

    # ------------------------------------------------------------------
    # helpers

    def _failed(self, generation: int, subject_filter: int | None, exc: ReputationError) -> RatingFetchResult:
        logger.warning(
            "rating fetch failed",
            extra={
                "data": {
                    "generation": generation,
                    "subject_filter": subject_filter,
                    "error_type": type(exc).__name__,
                    "error": exc.message,
                }
            },
        )
        if self.is_current(generation):
            self._state = QueryState.FAILED
            self._error = exc.message
        return RatingFetchResult(generation=generation, subject_filter=subject_filter, error=exc.message)

    async def _load_score(self, subject_id: int) -> float | None:
        try:
            result = await self._ledger.query(
                GET_SUBJECT_SCORE,
                origin=self._config.query_origin,
                data={"subject_id": subject_id},
            )
        except QueryUnavailableError:
            return None
        if not result.success:
            raise RemoteRejection(result.error or f"ledger refused {GET_SUBJECT_SCORE}")
        if result.response is None:
            return None
        if isinstance(result.response, bool) or not isinstance(result.response, int):
            raise MalformedResponseError(f"subject score must be an integer, got {result.response!r}")
        try:
            return ledger_score_to_stars(result.response)
        except ValueError as exc:
            raise MalformedResponseError(str(exc)) from exc

    async def _load_records(self, subject_filter: int | None) -> tuple[RatingRecord, ...]:
        if subject_filter is None:
            method = GET_ALL_RATINGS
            data: dict[str, object] | None = None
        else:
            method = GET_RATINGS_FOR_SUBJECT
            data = {"subject_id": subject_filter}

        try:
            result = await self._ledger.query(method, origin=self._config.query_origin, data=data)
        except QueryUnavailableError:
            if subject_filter is None:
                raise
            logger.info(
                "query method unavailable, reading ratings from storage",
                extra={"data": {"method": method, "subject_id": subject_filter}},
            )
            try:
                return await self._read_from_storage(subject_filter)
            except NotFoundError:
                return ()

        if not result.success:
            raise RemoteRejection(result.error or f"ledger refused {method}")
        records = parse_records(result.response)
        if subject_filter is not None:
            records = tuple(record for record in records if record.subject_id == subject_filter)
        return records

    async def _read_from_storage(self, subject_id: int) -> tuple[RatingRecord, ...]:
        entity_id = self._config.codec(str(subject_id))
        index_bytes = await self._ledger.read_storage(subject_index_key(self._config.index_root_key, entity_id))
        if index_bytes is None:
            raise NotFoundError(f"no storage entry for subject {subject_id}")
        try:
            purchase_refs = decode_purchase_index(index_bytes)
        except ScaleDecodeError as exc:
            raise MalformedResponseError(f"subject index for {subject_id} is malformed: {exc}") from exc

        records: list[RatingRecord] = []
        for purchase_ref in purchase_refs:
            raw = await self._ledger.read_storage(record_key(self._config.records_root_key, entity_id, purchase_ref))
            if raw is None:
                logger.warning(
                    "indexed rating missing from storage",
                    extra={"data": {"subject_id": subject_id, "purchase_ref": purchase_ref}},
                )
                continue
            try:
                record = decode_record(raw)
            except ScaleDecodeError as exc:
                raise MalformedResponseError(f"stored rating {purchase_ref} is malformed: {exc}") from exc
            if record.subject_id == subject_id:
                records.append(record)
        return tuple(records)


__all__ = ["QueryState", "RatingFetchResult", "RatingQueryService", "ScoreResult"]
