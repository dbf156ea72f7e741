"""
Structured logging for the order API.

Loggers accept context as keyword arguments:

    logger.info("Order created", order_id=order.id, items_count=2)

Production writes one JSON object per line; development writes a coloured
single line with the context appended. The request id set by the
correlation middleware is attached to every record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

# Attribute on LogRecord carrying the keyword context
CONTEXT_ATTR = "context"


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, CONTEXT_ATTR, None) or {}


def _record_request_id(record: logging.LogRecord) -> str | None:
    request_id = getattr(record, "request_id", None)
    if not request_id or request_id == "-":
        return None
    return request_id


class JsonFormatter(logging.Formatter):
    """One JSON document per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        request_id = _record_request_id(record)
        if request_id:
            payload["request_id"] = request_id

        payload.update(_record_context(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for local development."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        parts = [f"{color}{clock} {record.levelname:<7}{self.RESET}"]

        request_id = _record_request_id(record)
        if request_id:
            parts.append(f"[{request_id[:8]}]")
        parts.append(f"{record.name}: {record.getMessage()}")

        context = _record_context(record)
        if context:
            parts.append(" ".join(f"{key}={value}" for key, value in context.items()))

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class StructuredLogger(logging.Logger):
    """Logger whose level methods take keyword context."""

    def _log_context(self, level: int, msg: str, args: tuple, **context: Any) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = context.pop("exc_info", None)
        self._log(level, msg, args, exc_info=exc_info, extra={CONTEXT_ATTR: context})

    def debug(self, msg: str, *args: Any, **context: Any) -> None:
        self._log_context(logging.DEBUG, msg, args, **context)

    def info(self, msg: str, *args: Any, **context: Any) -> None:
        self._log_context(logging.INFO, msg, args, **context)

    def warning(self, msg: str, *args: Any, **context: Any) -> None:
        self._log_context(logging.WARNING, msg, args, **context)

    def error(self, msg: str, *args: Any, **context: Any) -> None:
        self._log_context(logging.ERROR, msg, args, **context)

    def critical(self, msg: str, *args: Any, **context: Any) -> None:
        self._log_context(logging.CRITICAL, msg, args, **context)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """Install the stdout handler on the root logger. Safe to call again."""
    from shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        JsonFormatter() if settings.environment == "production" else ConsoleFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpx", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Logger for a module.

        logger = get_logger(__name__)
        logger.error("Failed to publish event", event_type="order-created", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_phone(phone: str | None) -> str:
    """Keep only the last 4 digits of a customer phone: "13800138000" -> "*******8000"."""
    if not phone:
        return "<no-phone>"
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]


rest_api_logger = get_logger("spa_api")
orders_logger = get_logger("spa_api.orders")
events_logger = get_logger("spa_api.events")
