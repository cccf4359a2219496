"""Domain-specific exception types."""

from __future__ import annotations

from mark3t_commons.errors import (
    ConnectivityError,
    MalformedResponseError,
    NotFoundError,
    QueryUnavailableError,
    RemoteRejection,
    ReputationError,
    SubmissionInProgressError,
    ValidationError,
)


class MissingSignerError(ValidationError):
    """Raised when a submission is attempted without a connected wallet."""


__all__ = [
    "ConnectivityError",
    "MalformedResponseError",
    "MissingSignerError",
    "NotFoundError",
    "QueryUnavailableError",
    "RemoteRejection",
    "ReputationError",
    "SubmissionInProgressError",
    "ValidationError",
]
