"""
Structured logging configuration with sensitive data scrubbing.
"""
import logging
import re
import sys
from datetime import datetime, timezone
import json
from typing import Optional

from procureflow.core.config import settings

# Patterns that should be redacted from log output
_SENSITIVE_PATTERNS = re.compile(
    r'(password|secret|token|api_key|apikey|authorization|credential)'
    r'[\"\']?\s*[:=]\s*[\"\']?[^\s,;\"\'}{]+',
    re.IGNORECASE,
)

_SENSITIVE_KEYS = frozenset({
    "password", "secret", "api_key", "apikey", "token", "access_token",
    "authorization", "credential", "openai_api_key", "anthropic_api_key",
})

# Extra record attributes promoted into the JSON payload
_EXTRA_FIELDS = ("workspace_id", "stage", "action", "artifact_key", "supplier_id")


def _scrub_value(obj):
    """Recursively redact sensitive keys from dicts."""
    if isinstance(obj, dict):
        return {
            k: "***REDACTED***" if k.lower() in _SENSITIVE_KEYS else _scrub_value(v)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [_scrub_value(i) for i in obj]
    return obj


def _scrub_message(message: str) -> str:
    """Redact sensitive values from log messages."""
    return _SENSITIVE_PATTERNS.sub(r'\1=***REDACTED***', message)


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter with sensitive data scrubbing."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _scrub_message(record.getMessage()),
        }

        for field_name in _EXTRA_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                log_entry[field_name] = value

        if record.exc_info:
            log_entry["exception"] = _scrub_message(self.formatException(record.exc_info))

        return json.dumps(log_entry, default=str)


def setup_logging():
    """Configure application logging."""
    root_logger = logging.getLogger()

    # Prevent duplicate handlers on repeated calls
    if root_logger.handlers:
        return

    root_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    # Suppress noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


class AuditLogger:
    """Helper for logging workflow audit events."""

    def __init__(self):
        self.logger = get_logger("audit")

    def log(
        self,
        action: str,
        workspace_id: Optional[str] = None,
        stage: Optional[str] = None,
        artifact_key: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        """Log an audit event."""
        extra = {
            "workspace_id": workspace_id,
            "stage": stage,
            "action": action,
            "artifact_key": artifact_key,
        }

        message = f"AUDIT: {action}"
        if workspace_id and stage:
            message += f" on {workspace_id}:{stage}"
        if details:
            scrubbed = _scrub_value(details)
            message += f" - {json.dumps(scrubbed, default=str)}"

        self.logger.info(message, extra=extra)


audit_logger = AuditLogger()
