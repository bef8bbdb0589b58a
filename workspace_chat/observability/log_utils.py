"""
Chat-turn logging helpers.

Log records for a turn carry the same flat ``extra`` keys everywhere
(``workspace``, ``session_id``, ``thread_id``, ``phase``, ``tool_name``) so
log search can follow one conversation across services. Values are
flattened to short strings: UUIDs and enums to their text, timestamps to
ISO 8601, collections to their size, and long text is clipped.

Dependencies: logging (stdlib)
System role: Structured context for chat pipeline log records
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

MAX_VALUE_LENGTH = 200

# LogRecord attributes that an ``extra`` key must not shadow.
_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def log_value(value: Any) -> Any:
    """
    Flatten a value for a log record.

    Numbers and booleans pass through so handlers can aggregate them.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return log_value(value.value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return f"{len(value)} keys"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{len(value)} items"
    text = str(value)
    if len(text) > MAX_VALUE_LENGTH:
        return f"{text[:MAX_VALUE_LENGTH]}... ({len(text)} chars)"
    return text


def turn_context(**fields: Any) -> dict[str, Any]:
    """
    Build the ``extra`` mapping for a chat-turn record.

    None values are omitted; keys clashing with LogRecord attributes get a
    ``ctx_`` prefix instead of raising inside ``logging``.
    """
    context = {}
    for key, value in fields.items():
        if value is None:
            continue
        context[f"ctx_{key}" if key in _RESERVED else key] = log_value(value)
    return context


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context: Any,
) -> None:
    """
    Log a message with turn context.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        message: Log message
        **context: session_id, thread_id, phase, tool_name, counters...
    """
    logger.log(level, message, extra=turn_context(**context))


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """
    Log a pipeline failure with traceback and turn context.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception raised by the pipeline
        **context: Same keys as ``log_with_context``
    """
    extra = turn_context(**context)
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = log_value(getattr(exc, "message", None) or str(exc))
    logger.error(message, exc_info=exc, extra=extra)
