"""
Structured logging configuration.
Emits JSON lines carrying correlation IDs and provides a dedicated audit trail.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import settings


class JsonFormatter(logging.Formatter):
    """Renders each record as a single JSON object for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }

        details = getattr(record, "details", None)
        if details is not None:
            payload["details"] = details

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


def _build_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_JSON:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        ))
    return handler


def setup_logger(name: str) -> logging.Logger:
    """Idempotent logger factory. Handlers are attached only once per logger name."""
    configured = logging.getLogger(name)
    if not configured.handlers:
        configured.addHandler(_build_handler())
    configured.setLevel(settings.LOG_LEVEL.upper())
    configured.propagate = False
    return configured


logger = setup_logger("consorcio")
_audit_logger = setup_logger("consorcio.audit")


class CorrelationAdapter(logging.LoggerAdapter):
    """Injects the request correlation ID into every record."""

    def process(self, msg: Any, kwargs: Any) -> Any:
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("correlation_id", self.extra["correlation_id"])
        return msg, kwargs


def get_logger_with_correlation(correlation_id: str) -> CorrelationAdapter:
    """Returns a logger bound to the given correlation ID for distributed tracing."""
    return CorrelationAdapter(logger, {"correlation_id": correlation_id})


def audit_log(
    action: str,
    user: str,
    resource: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """
    Writes an immutable audit trail entry.
    Audit entries go to a dedicated logger so they can be routed separately.
    """
    details = details or {}
    _audit_logger.info(
        f"AUDIT action={action} user={user} resource={resource}",
        extra={
            "correlation_id": details.get("correlation_id"),
            "details": details,
        }
    )
