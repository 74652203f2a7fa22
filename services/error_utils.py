from __future__ import annotations

from typing import Any, Dict, Type

from config import Strings
from services.errors import (
    FileReadError,
    NetworkError,
    PersistenceParseError,
    ServerError,
    SubmissionError,
    ValidationError,
)
from services.logging_utils import get_logger


# Mapping of exception types to user-facing messages
EXCEPTION_MESSAGE_MAP: Dict[Type[BaseException], str] = {
    NetworkError: Strings.NETWORK_ERROR,
    FileReadError: Strings.FILE_READ_FAILED,
    PersistenceParseError: Strings.TRY_AGAIN_LATER,
}


def map_exception_to_message(exc: BaseException) -> str:
    """Convert a known exception into a user-facing message.

    Validation and collector errors already carry a message meant for the
    user; unknown exceptions fall back to a safe generic message.
    """

    if isinstance(exc, (ValidationError, ServerError)) and exc.message:
        return exc.message
    for etype, message in EXCEPTION_MESSAGE_MAP.items():
        if isinstance(exc, etype):
            return message
    if isinstance(exc, SubmissionError):
        return Strings.SUBMIT_FAILED
    return Strings.TRY_AGAIN_LATER


def exception_category(exc: BaseException) -> str:
    return (
        "validation" if isinstance(exc, ValidationError)
        else "file" if isinstance(exc, FileReadError)
        else "network" if isinstance(exc, NetworkError)
        else "server" if isinstance(exc, ServerError)
        else "persistence" if isinstance(exc, PersistenceParseError)
        else "unexpected"
    )


def log_exception_categorized(exc: BaseException, **context: Any) -> None:
    """Log an exception with a category and sanitized context.

    Expected failures (validation, collector rejections) are logged at
    warning level without a traceback; everything else gets one.
    """

    category = exception_category(exc)
    log = get_logger(f"error.{category}")
    if category in ("validation", "server", "network", "file"):
        log.warning("handler failed", extra={"category": category, "error": str(exc), **context})
    else:
        log.error("handler failed", exc_info=exc, extra={"category": category, **context})


def handle_exception(exc: BaseException, **context: Any) -> str:
    """Log a categorized exception and return a user-facing message."""

    log_exception_categorized(exc, **context)
    return map_exception_to_message(exc)
