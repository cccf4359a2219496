"""Rating submission pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from mark3t_reputation.application.dto.config import ReputationClientConfig
from mark3t_reputation.application.ports.ledger import SUBMIT_RATING, ReputationLedgerPort
from mark3t_reputation.application.ports.signer import SignerPort, is_signer
from mark3t_reputation.domain.exceptions import (
    MalformedResponseError,
    MissingSignerError,
    RemoteRejection,
    ReputationError,
    SubmissionInProgressError,
    ValidationError,
)
from mark3t_reputation.domain.rating import (
    RatingInput,
    ReferenceFactory,
    SubmitResult,
    buyer_ref_for,
    random_reference,
    to_record,
)

logger = logging.getLogger("mark3t_reputation.submission")


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_IN_FLIGHT = frozenset({SubmissionState.VALIDATING, SubmissionState.SUBMITTING})
_TERMINAL = frozenset({SubmissionState.SUCCEEDED, SubmissionState.FAILED})


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    """Result/error pair of one submission attempt."""

    result: SubmitResult | None = None
    error: ReputationError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error is not None else None


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RatingSubmissionService:
    """Validates ratings and dispatches them to the ledger through a signer.

    One submission may be in flight per instance; a concurrent call is rejected
    with :class:`SubmissionInProgressError` and never reaches the ledger. Failed
    submissions are not retried.
    """

    def __init__(
        self,
        *,
        ledger: ReputationLedgerPort,
        config: ReputationClientConfig,
        clock: Callable[[], datetime] = _utc_now,
        reference_factory: ReferenceFactory = random_reference,
        state_listener: Callable[[SubmissionState], None] | None = None,
    ) -> None:
        self._ledger = ledger
        self._config = config
        self._clock = clock
        self._reference_factory = reference_factory
        self._state_listener = state_listener
        self._state = SubmissionState.IDLE
        self._last_outcome: SubmissionOutcome | None = None

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def last_outcome(self) -> SubmissionOutcome | None:
        return self._last_outcome

    def reset(self) -> None:
        if self._state in _IN_FLIGHT:
            raise SubmissionInProgressError("cannot reset while a submission is in flight")
        self._transition(SubmissionState.IDLE)

    async def submit(
        self,
        rating: RatingInput,
        signer: SignerPort | None,
        *,
        buyer_ref: int | None = None,
        purchase_ref: int | None = None,
        article_ref: int | None = None,
    ) -> SubmissionOutcome:
        if self._state in _IN_FLIGHT:
            logger.info(
                "rejected concurrent rating submission",
                extra={"data": {"subject_id": rating.subject_id, "state": self._state.value}},
            )
            return SubmissionOutcome(error=SubmissionInProgressError("a rating submission is already in progress"))

        if self._state in _TERMINAL:
            self._transition(SubmissionState.IDLE)
        self._transition(SubmissionState.VALIDATING)

        try:
            checked_signer = self._require_signer(signer)
            record = to_record(
                rating,
                buyer_ref=buyer_ref if buyer_ref is not None else buyer_ref_for(checked_signer.address),
                now=self._clock(),
                purchase_ref=purchase_ref,
                article_ref=article_ref,
                reference_factory=self._reference_factory,
            )
        except ValidationError as exc:
            logger.info(
                "rating failed validation",
                extra={"data": {"subject_id": rating.subject_id, "reason": exc.message}},
            )
            return self._finish(SubmissionOutcome(error=exc))
        except ValueError as exc:
            return self._finish(SubmissionOutcome(error=ValidationError(str(exc))))

        self._transition(SubmissionState.SUBMITTING)
        try:
            receipt = await self._ledger.send(
                SUBMIT_RATING,
                origin=checked_signer.address,
                data={"rating": record.to_wire()},
                signer=checked_signer,
            )
            if not receipt.ok:
                raise RemoteRejection(receipt.dispatch_error or "ledger rejected the rating")
            if not receipt.tx_hash.strip():
                raise MalformedResponseError("ledger acknowledged the rating without a transaction hash")
        except ReputationError as exc:
            logger.warning(
                "rating submission failed",
                extra={
                    "data": {
                        "subject_id": record.subject_id,
                        "purchase_ref": record.purchase_ref,
                        "error_type": type(exc).__name__,
                        "error": exc.message,
                    }
                },
            )
            return self._finish(SubmissionOutcome(error=exc))
        except Exception as exc:
            logger.exception(
                "rating submission raised",
                extra={"data": {"subject_id": record.subject_id, "purchase_ref": record.purchase_ref}},
            )
            return self._finish(SubmissionOutcome(error=ReputationError(f"rating submission failed: {exc}")))

        logger.info(
            "rating submitted",
            extra={
                "data": {
                    "contract": self._config.contract_address,
                    "subject_id": record.subject_id,
                    "purchase_ref": record.purchase_ref,
                    "tx_hash": receipt.tx_hash,
                }
            },
        )
        return self._finish(SubmissionOutcome(result=SubmitResult(success=True, hash=receipt.tx_hash, record=record)))

    # ------------------------------------------------------------------
    # helpers

    @staticmethod
    def _require_signer(signer: SignerPort | None) -> SignerPort:
        if signer is None:
            raise MissingSignerError("wallet not connected: connect a wallet before submitting a rating")
        if not is_signer(signer):
            raise MissingSignerError("wallet signer must provide an address and a sign(bytes) function")
        return signer

    def _finish(self, outcome: SubmissionOutcome) -> SubmissionOutcome:
        self._last_outcome = outcome
        self._transition(SubmissionState.SUCCEEDED if outcome.ok else SubmissionState.FAILED)
        return outcome

    def _transition(self, state: SubmissionState) -> None:
        self._state = state
        if self._state_listener is not None:
            self._state_listener(state)


__all__ = ["RatingSubmissionService", "SubmissionOutcome", "SubmissionState"]
