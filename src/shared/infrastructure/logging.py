"""
Structured Logging
==================

One JSON object per log line, stamped with service, environment and request ids.

Credential fields (Salesforce secrets, API keys, tokens) are replaced with
REDACTED before a record is emitted, whatever logger wrote it.

Usage:
    from src.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Case created", extra={"case_id": "500XX0000001"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

REDACTED = "***REDACTED***"

# Substrings of field names whose string values never reach the log output.
_SENSITIVE_KEYS = ("password", "secret", "api_key", "security_token", "access_token", "authorization")


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    if any(marker in lowered for marker in _SENSITIVE_KEYS):
        return True
    return lowered == "token"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps context and redacts credentials.

    Per record:
    - UTC ISO timestamp unless one is already set
    - correlation_id / session_id when available
    - service and environment info
    """

    def __init__(self, *args: Any, service: str = "unknown", environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._service = service
        self._environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not isinstance(log_record, dict):
            return

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        for key in ("correlation_id", "session_id"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)

        log_record["service"] = self._service
        log_record["environment"] = self._environment

        for key, value in list(log_record.items()):
            if isinstance(value, str) and _is_sensitive(key):
                log_record[key] = REDACTED


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
    service: str = "mps-support-assistant",
) -> None:
    """
    Route every logger to stdout through CustomJsonFormatter.

    Args:
        level: Root level name, e.g. "INFO"
        environment: Deployment environment stamped on every record
        service: Service name stamped on every record
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(
        CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            service=service,
            environment=environment,
        )
    )
    root_logger.addHandler(handler)

    # Third-party chatter stays at WARNING
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("pymilvus").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Module logger; formatting comes from setup_logging().

    Args:
        name: Usually __name__

    Returns:
        logging.Logger
    """
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any):
    """
    Log the wall-clock duration of the wrapped block at DEBUG.

    Usage:
        with log_latency(logger, "vector_query", top_k=1):
            hits = await index.query(vector, top_k=1)

    Args:
        logger: Logger instance
        operation: Name used in the message and the "operation" field
        **extra_context: Extra fields for the record
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round(latency_ms, 2),
                **extra_context,
            },
        )
