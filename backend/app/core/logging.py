"""
Logging configuration.

JSON lines in production, short human-readable lines elsewhere.
Modules log through logging.getLogger(__name__).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from app.core.config import settings

_CONTEXT_FIELDS = ("user_id", "phone", "method", "url")


class StructuredFormatter(logging.Formatter):
    """Single-line JSON records for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


class DevelopmentFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        message = f"[{timestamp}] {record.levelname:<8} {record.name}: {record.getMessage()}"

        context = [f"{field}={getattr(record, field)}" for field in _CONTEXT_FIELDS if hasattr(record, field)]
        if context:
            message += f" [{', '.join(context)}]"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging() -> None:
    """Configure the root logger once at application start."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Third-party loggers are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def mask_phone(phone: str | None) -> str:
    """Keep only the last three digits of a phone number for log output."""
    if not phone:
        return "-"
    return "*" * max(len(phone) - 3, 0) + phone[-3:]
