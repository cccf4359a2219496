"""Rating records, display ratings and score aggregation."""

from __future__ import annotations

import hashlib
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from mark3t_commons.errors import ValidationError

MIN_SCORE = 1
MAX_SCORE = 5

# Contract-side scores are stored on a 0..100 scale.
LEDGER_SCORE_FACTOR = 20

ReferenceFactory = Callable[[], int]

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Latest millisecond timestamp that still renders as a calendar date.
MAX_TIMESTAMP_MS = (datetime.max.replace(tzinfo=UTC) - _EPOCH) // timedelta(milliseconds=1)


def _is_score(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and MIN_SCORE <= value <= MAX_SCORE


def _require_ref(name: str, value: int, *, bits: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in an unsigned {bits}-bit integer")


@dataclass(frozen=True, slots=True)
class RatingInput:
    """Rating as entered by a user, before any validation."""

    subject_id: int
    subject_label: str = ""
    comment: str = ""
    article_score: int | None = None
    shipping_score: int | None = None
    communication_score: int | None = None

    def validate(self) -> None:
        """Raise :class:`ValidationError` unless the input can be submitted."""
        if isinstance(self.subject_id, bool) or not isinstance(self.subject_id, int) or self.subject_id < 0:
            raise ValidationError("subject id must be a non-negative integer")
        missing = [
            name
            for name, value in (
                ("article", self.article_score),
                ("shipping", self.shipping_score),
                ("communication", self.communication_score),
            )
            if not _is_score(value)
        ]
        if missing:
            raise ValidationError(
                f"scores must be whole numbers between {MIN_SCORE} and {MAX_SCORE}: {', '.join(missing)}"
            )


@dataclass(frozen=True, slots=True)
class RatingRecord:
    """Canonical rating as stored by the ledger. Timestamps are unix milliseconds."""

    purchase_ref: int
    timestamp: int
    buyer_ref: int
    subject_id: int
    article_ref: int
    article_score: int
    shipping_score: int
    communication_score: int
    remark: str | None = None

    def __post_init__(self) -> None:
        _require_ref("purchase_ref", self.purchase_ref, bits=64)
        _require_ref("timestamp", self.timestamp, bits=64)
        if self.timestamp > MAX_TIMESTAMP_MS:
            raise ValueError(f"timestamp {self.timestamp} is beyond the representable date range")
        _require_ref("buyer_ref", self.buyer_ref, bits=32)
        _require_ref("subject_id", self.subject_id, bits=32)
        _require_ref("article_ref", self.article_ref, bits=32)
        for name in ("article_score", "shipping_score", "communication_score"):
            if not _is_score(getattr(self, name)):
                raise ValueError(f"{name} must be between {MIN_SCORE} and {MAX_SCORE}")

    @property
    def scores(self) -> tuple[int, int, int]:
        return (self.article_score, self.shipping_score, self.communication_score)

    def to_wire(self) -> dict[str, object]:
        """Render the record with the contract's field names."""
        return {
            "purchase_id": self.purchase_ref,
            "timestamp": self.timestamp,
            "buyer": self.buyer_ref,
            "subject_id": self.subject_id,
            "article_id": self.article_ref,
            "article_score": self.article_score,
            "shipping_score": self.shipping_score,
            "seller_score": self.communication_score,
            "remark": self.remark,
        }


@dataclass(frozen=True, slots=True)
class Rating:
    """Display form of a rating; ``id`` is only its position in one fetch."""

    id: int
    subject_id: int
    subject_label: str
    date: str
    comment: str
    article: int
    shipping: int
    communication: int

    @property
    def overall(self) -> float:
        return (self.article + self.shipping + self.communication) / 3


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Outcome of one acknowledged submission."""

    success: bool
    hash: str
    record: RatingRecord | None = None

    def __post_init__(self) -> None:
        if self.success and not self.hash.strip():
            raise ValueError("successful submissions must carry a transaction hash")


@dataclass(frozen=True, slots=True)
class RatingSummary:
    """Average scores over a set of ratings."""

    count: int
    avg_article: float
    avg_shipping: float
    avg_communication: float
    avg_overall: float

    @classmethod
    def empty(cls) -> RatingSummary:
        return cls(count=0, avg_article=0.0, avg_shipping=0.0, avg_communication=0.0, avg_overall=0.0)


def random_reference() -> int:
    """Return 32 random bits; uniqueness on the ledger is not guaranteed."""
    return uuid4().int >> 96


def buyer_ref_for(address: str) -> int:
    """Stable 32-bit buyer reference for a signer address."""
    if not address:
        raise ValueError("address must not be empty")
    digest = hashlib.blake2b(address.encode("utf-8"), digest_size=4).digest()
    return int.from_bytes(digest, "little")


def to_timestamp_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        raise ValueError("timestamps must be timezone-aware")
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def format_rating_date(timestamp_ms: int) -> str:
    """Render a millisecond timestamp as a UTC calendar date."""
    return (_EPOCH + timedelta(milliseconds=timestamp_ms)).date().isoformat()


def to_record(
    rating: RatingInput,
    *,
    buyer_ref: int,
    now: datetime,
    purchase_ref: int | None = None,
    article_ref: int | None = None,
    reference_factory: ReferenceFactory = random_reference,
) -> RatingRecord:
    """Build the ledger record for a validated input."""
    rating.validate()
    remark = rating.comment.strip() or None
    return RatingRecord(
        purchase_ref=purchase_ref if purchase_ref is not None else reference_factory(),
        timestamp=to_timestamp_ms(now),
        buyer_ref=buyer_ref,
        subject_id=rating.subject_id,
        article_ref=article_ref if article_ref is not None else reference_factory(),
        article_score=int(rating.article_score),  # type: ignore[arg-type]
        shipping_score=int(rating.shipping_score),  # type: ignore[arg-type]
        communication_score=int(rating.communication_score),  # type: ignore[arg-type]
        remark=remark,
    )


def to_display(
    records: Iterable[RatingRecord],
    label_for: Callable[[int], str],
) -> tuple[Rating, ...]:
    """Order records newest first and convert them to display ratings."""
    ordered = sorted(records, key=lambda record: record.timestamp, reverse=True)
    return tuple(
        Rating(
            id=position,
            subject_id=record.subject_id,
            subject_label=label_for(record.subject_id),
            date=format_rating_date(record.timestamp),
            comment=record.remark or "",
            article=record.article_score,
            shipping=record.shipping_score,
            communication=record.communication_score,
        )
        for position, record in enumerate(ordered)
    )


def _summarize_scores(scores: Iterable[tuple[int, int, int]]) -> RatingSummary:
    count = 0
    totals = [0, 0, 0]
    for article, shipping, communication in scores:
        count += 1
        totals[0] += article
        totals[1] += shipping
        totals[2] += communication
    if count == 0:
        return RatingSummary.empty()
    avg_article, avg_shipping, avg_communication = (total / count for total in totals)
    return RatingSummary(
        count=count,
        avg_article=avg_article,
        avg_shipping=avg_shipping,
        avg_communication=avg_communication,
        avg_overall=(avg_article + avg_shipping + avg_communication) / 3,
    )


def aggregate(records: Iterable[RatingRecord]) -> RatingSummary:
    """Per-dimension means; the overall score is the mean of those three means."""
    return _summarize_scores(record.scores for record in records)


def summarize(ratings: Iterable[Rating]) -> RatingSummary:
    return _summarize_scores((r.article, r.shipping, r.communication) for r in ratings)


def aggregate_by_subject(records: Iterable[RatingRecord]) -> Mapping[int, RatingSummary]:
    grouped: dict[int, list[RatingRecord]] = defaultdict(list)
    for record in records:
        grouped[record.subject_id].append(record)
    return {subject_id: aggregate(items) for subject_id, items in sorted(grouped.items())}


def ledger_score_to_stars(score: int) -> float:
    """Convert a 0..100 contract score to the 0..5 star scale."""
    if not 0 <= score <= MAX_SCORE * LEDGER_SCORE_FACTOR:
        raise ValueError(f"ledger score {score} out of range")
    return score / LEDGER_SCORE_FACTOR


__all__ = [
    "LEDGER_SCORE_FACTOR",
    "MAX_TIMESTAMP_MS",
    "MAX_SCORE",
    "MIN_SCORE",
    "Rating",
    "RatingInput",
    "RatingRecord",
    "RatingSummary",
    "ReferenceFactory",
    "SubmitResult",
    "aggregate",
    "aggregate_by_subject",
    "buyer_ref_for",
    "format_rating_date",
    "ledger_score_to_stars",
    "random_reference",
    "summarize",
    "to_display",
    "to_record",
    "to_timestamp_ms",
]
