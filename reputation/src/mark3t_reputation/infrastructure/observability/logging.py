"""Reputation client logging helpers built on shared commons logging."""

from __future__ import annotations

from mark3t_commons.observability.logging import build_log_config as _build_log_config
from mark3t_commons.observability.logging import configure_logging as _configure_logging

_REPUTATION_EXTRA_LOGGERS = {
    "mark3t_reputation.ledger": {"level": "INFO"},
    "bittensor": {"level": "WARNING"},
}

__all__ = ["build_log_config", "init_logging"]


def init_logging(*, json_output: bool = False) -> None:
    """Bootstrap console logging."""

    _configure_logging(
        root_level_env="LOG_LEVEL",
        root_default="INFO",
        extra_loggers=_REPUTATION_EXTRA_LOGGERS,
        json_output=json_output,
    )


def build_log_config() -> dict[str, object]:
    return _build_log_config(
        root_level_env="LOG_LEVEL",
        root_default="INFO",
        extra_loggers=_REPUTATION_EXTRA_LOGGERS,
    )
