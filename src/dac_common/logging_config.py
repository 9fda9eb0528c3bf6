"""Logging setup shared by the attestation packages.

Records carry the emitting service name and, when a span is active, the
OpenTelemetry trace and span ids. Verification records may also carry the
``attestation_result`` and ``key_identifier`` extras, which the JSON
formatter promotes to top-level fields.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

from opentelemetry import trace

TEXT_LOG_FORMAT = (
    "%(asctime)s - %(levelname)s - [%(service_name)s] - [%(name)s] - "
    "[%(module)s.%(funcName)s:%(lineno)d] - %(message)s"
)

DEFAULT_LOG_LEVEL = "INFO"
LOG_OFF_LEVEL = "OFF"

# Extras attached by the verifier that structured output should keep.
ATTESTATION_LOG_FIELDS = ("attestation_result", "key_identifier")


class ServiceNameFilter(logging.Filter):
    """Stamp every record with the configured service name."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        return True


class TraceContextFilter(logging.Filter):
    """Attach hex trace and span ids of the current span, or ``None``."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = trace.format_trace_id(span_context.trace_id)
            record.span_id = trace.format_span_id(span_context.span_id)
        else:
            record.trace_id = None
            record.span_id = None
        return True


class AttestationJSONFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def __init__(self, fields: tuple[str, ...] = ATTESTATION_LOG_FIELDS) -> None:
        super().__init__()
        self.fields = fields

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service_name", "unknown"),
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            {field: getattr(record, field) for field in self.fields if hasattr(record, field)}
        )
        for id_field in ("trace_id", "span_id"):
            value = getattr(record, id_field, None)
            if value:
                entry[id_field] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return AttestationJSONFormatter()
    if log_format.lower() == "text":
        return logging.Formatter(TEXT_LOG_FORMAT)
    return logging.Formatter(log_format)


def setup_logging(
    service_name: str = "device-attestation",
    log_level_env_var: str = "LOG_LEVEL",
    log_format_env_var: str = "LOG_FORMAT",
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Explicit ``level``/``log_format`` arguments win over the environment.

    Args:
        service_name: Name stamped on every record
        log_level_env_var: Environment variable holding the level name
        log_format_env_var: Environment variable holding the format
        level: Level name, or "OFF" to silence logging entirely
        log_format: "json", "text", or a ``logging`` format string
    """
    level_name = (level or os.environ.get(log_level_env_var, DEFAULT_LOG_LEVEL)).upper()
    format_name = log_format or os.environ.get(log_format_env_var, "text")

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if level_name == LOG_OFF_LEVEL:
        root_logger.setLevel(logging.CRITICAL + 1)
        print(f"Logging is OFF for {service_name}.", file=sys.stderr)
        return

    root_logger.setLevel(_resolve_level(level_name))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(format_name))
    handler.addFilter(ServiceNameFilter(service_name))
    handler.addFilter(TraceContextFilter())
    root_logger.addHandler(handler)

    logging.getLogger(__name__).debug(
        "Logging configured for %s at %s (%s)", service_name, level_name, format_name
    )
