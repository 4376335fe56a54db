"""
Structured Logging
==================

JSON log lines for the API and the triage pipeline.

Every record carries a timestamp, the service and environment names and,
when known, a correlation id. Request logs use the id from
``X-Correlation-ID``; triage runs use the ticket id, so one grep finds all
steps of a run. Values under secret-looking keys are masked before output.

Usage:
    from ticket_assistant.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Ticket assigned", extra={"ticket_id": "...", "assignee": "..."})
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any
from contextlib import contextmanager

from pythonjsonlogger import jsonlogger


SERVICE_NAME = "ai-ticket-assistant"
REDACTED = "***REDACTED***"
SENSITIVE_KEYS = ("password", "api_key", "authorization")

# Third-party loggers that drown out the triage lines at INFO
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "apscheduler")


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    if any(s in lowered for s in SENSITIVE_KEYS):
        return True
    # "max_tokens" is a setting, "mail_api_token" is a secret
    return "token" in lowered and "tokens" not in lowered


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding service context and masking secrets passed via ``extra``."""

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        self.environment = environment
        super().__init__(*args, **kwargs)

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = getattr(record, "environment", self.environment)
        if hasattr(record, "correlation_id"):
            log_record["correlation_id"] = record.correlation_id

        for key, value in log_record.items():
            if isinstance(value, str) and _is_sensitive(key):
                log_record[key] = REDACTED


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """Route the root logger to stdout as JSON. Called once from the app lifespan."""
    log_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(CustomJsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        environment=environment,
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into per-call ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_context_logger(name: str, correlation_id: str | None = None) -> logging.Logger | logging.LoggerAdapter:
    """Logger bound to a correlation id (the ticket id during triage)."""
    logger = get_logger(name)
    if correlation_id:
        return ContextLoggerAdapter(logger, {"correlation_id": correlation_id})
    return logger


@contextmanager
def log_latency(logger: logging.Logger | logging.LoggerAdapter, operation: str, **extra_context: Any):
    """
    Log how long the block took, whether or not it raised.

    Usage:
        with log_latency(logger, "classification_attempt", provider="primary:openai"):
            response = await provider.generate(...)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                **extra_context,
            },
        )
