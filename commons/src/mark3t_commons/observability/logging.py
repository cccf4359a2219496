"""Shared logging helpers (formatter + base config builder)."""

from __future__ import annotations

import json
import logging
import os
import time
import traceback
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from logging.config import dictConfig
from typing import Any

from opentelemetry import baggage, trace


def _level(env_var: str, default: str) -> str:
    return os.getenv(env_var, default).upper()


def _should_emit_json_payload(forced: bool = False) -> bool:
    # Container log ingestion parses JSON lines into structured payloads.
    # Outside managed runtimes we keep logs human-readable unless LOG_JSON is set.
    if forced:
        return True
    if os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"):
        return True
    return os.getenv("LOG_JSON", "").strip().lower() in {"1", "true", "yes"}


def _compact_json(value: Any, *, limit: int = 512) -> str:
    encoded = json.dumps(value, sort_keys=True, separators=(",", ":"))
    if len(encoded) <= limit:
        return encoded
    return encoded[:limit] + "... (truncated)"


def _structured_payload(record: logging.LogRecord) -> dict[str, Any]:
    record_dict = record.__dict__
    record_data = record_dict.get("data")
    record_json_fields = record_dict.get("json_fields")

    message = record.getMessage()
    sanitized_data: Any | None = None
    if record_data:
        sanitized_data = _sanitize_for_json(record_data)
        message = f"{message} | data={_compact_json(sanitized_data)}"

    payload: dict[str, Any] = {
        "message": message,
        "severity": record.levelname,
        "logger": record.name,
        "timestamp": (
            f"{time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created))}"
            f".{int(record.msecs):03d}Z"
        ),
    }
    if record.exc_info:
        payload["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip("\n")
    if sanitized_data is not None:
        payload["data"] = sanitized_data

    if record_json_fields:
        json_fields = _sanitize_for_json(record_json_fields)
        if isinstance(json_fields, Mapping):
            for key, value in json_fields.items():
                if key in payload:
                    payload.setdefault("json_fields", {})[key] = value
                else:
                    payload[key] = value
        else:
            payload["json_fields"] = json_fields

    return payload


class ExtrasFormatter(logging.Formatter):
    """Append structured `data` payloads when present."""

    def __init__(self, *args: Any, json_output: bool = False, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        record_data = record.__dict__.get("data")

        if _should_emit_json_payload(self._json_output):
            return json.dumps(_structured_payload(record), sort_keys=True, separators=(",", ":"))

        formatted = super().format(record)
        if record_data:
            try:
                encoded = json.dumps(record_data, sort_keys=True, separators=(",", ":"))
            except TypeError:
                encoded = json.dumps(_sanitize_for_json(record_data), sort_keys=True, separators=(",", ":"))
            return f"{formatted} | data={encoded}"
        return formatted


class OtelContextLogFilter(logging.Filter):
    """Inject OpenTelemetry trace context + baggage into json_fields."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - thin wrapper
        record_dict = record.__dict__
        json_fields = record_dict.get("json_fields")

        if json_fields is None:
            json_fields_map: dict[str, Any] = {}
        elif isinstance(json_fields, Mapping):
            json_fields_map = dict(json_fields)
        else:
            json_fields_map = {"json_fields": json_fields}

        otel: dict[str, Any] = {}
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            otel["trace_id"] = f"{span_context.trace_id:032x}"
            otel["span_id"] = f"{span_context.span_id:016x}"

        baggage_values = baggage.get_all()
        if baggage_values:
            otel["baggage"] = {key: str(value) for key, value in baggage_values.items()}

        if not otel:
            return True

        json_fields_map["otel"] = otel
        record_dict["json_fields"] = json_fields_map
        return True


def build_log_config(
    *,
    root_level_env: str,
    root_default: str,
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
    json_output: bool = False,
) -> dict[str, Any]:
    """Return a dictConfig-compatible logging configuration."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _formatters(json_output=json_output),
        "filters": _filters(),
        "handlers": _handlers(),
        "root": {
            "level": _level(root_level_env, root_default),
            "handlers": ["console"],
        },
        "loggers": _logger_definitions(extra_loggers),
    }


def _logger_definitions(extra_loggers: Mapping[str, dict[str, Any]] | None) -> dict[str, dict[str, Any]]:
    loggers: dict[str, dict[str, Any]] = {
        "httpx": {
            "level": _level("HTTPX_LOG_LEVEL", "WARNING"),
            "handlers": ["console"],
            "propagate": False,
        },
        "httpcore": {
            "level": _level("HTTPX_LOG_LEVEL", "WARNING"),
            "handlers": ["console"],
            "propagate": False,
        },
        "opentelemetry": {
            "level": _level("OTEL_LOG_LEVEL", "WARNING"),
            "handlers": ["console"],
            "propagate": False,
        },
    }
    if extra_loggers:
        loggers.update(extra_loggers)
    return loggers


def _formatters(*, json_output: bool) -> dict[str, Any]:
    return {
        "console": {
            "()": ExtrasFormatter,
            "json_output": json_output,
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%S",
        }
    }


def _handlers() -> dict[str, Any]:
    return {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": "ext://sys.stderr",
            "filters": ["otel_context"],
        }
    }


def _filters() -> dict[str, Any]:
    return {
        "otel_context": {
            "()": OtelContextLogFilter,
        },
    }


def _sanitize_for_json(value: Any, depth: int = 10) -> Any:
    """Return a JSON-serializable copy; fallback to string for unknowns."""

    if depth <= 0:
        return "<depth_exceeded>"
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes len={len(value)}>"
    if is_dataclass(value) and not isinstance(value, type):
        return _sanitize_for_json(asdict(value), depth - 1)
    if isinstance(value, Mapping):
        return {str(k): _sanitize_for_json(v, depth - 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_sanitize_for_json(item, depth - 1) for item in value]
    return str(value)


def configure_logging(
    *,
    root_level_env: str,
    root_default: str,
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
    json_output: bool = False,
) -> None:
    """Apply the shared logging config."""
    config = build_log_config(
        root_level_env=root_level_env,
        root_default=root_default,
        extra_loggers=extra_loggers or {},
        json_output=json_output,
    )
    dictConfig(config)
    _reset_package_logger_levels(logging.getLogger().level)


_PACKAGE_LOGGER_ROOTS: tuple[str, ...] = (
    "mark3t_reputation",
    "mark3t_commons",
)


def _reset_package_logger_levels(root_level: int) -> None:
    """Restore our package loggers after bittensor silences third parties."""

    for root_name in _PACKAGE_LOGGER_ROOTS:
        logger = logging.getLogger(root_name)
        logger.setLevel(root_level)
        logger.propagate = True


__all__ = ["ExtrasFormatter", "OtelContextLogFilter", "build_log_config", "configure_logging"]
