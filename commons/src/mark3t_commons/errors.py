"""Error taxonomy shared by the reputation client components."""

from __future__ import annotations


class ReputationError(Exception):
    """Base class for reputation pipeline failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ReputationError):
    """Raised when local input checks fail before any remote call."""


class SubmissionInProgressError(ValidationError):
    """Raised when a pipeline already has a submission in flight."""


class ConnectivityError(ReputationError):
    """Raised when the remote ledger cannot be reached or times out."""


class RemoteRejection(ReputationError):
    """Raised when the remote ledger refuses a call."""


class MalformedResponseError(RemoteRejection):
    """Raised when the remote ledger answers with an unusable payload."""


class QueryUnavailableError(RemoteRejection):
    """Raised when the contract does not expose the requested query method."""


class NotFoundError(ReputationError):
    """Raised when a storage key has no value on the ledger."""


__all__ = [
    "ReputationError",
    "ValidationError",
    "SubmissionInProgressError",
    "ConnectivityError",
    "RemoteRejection",
    "MalformedResponseError",
    "QueryUnavailableError",
    "NotFoundError",
]
