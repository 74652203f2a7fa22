from __future__ import annotations
import logging
import contextvars
from typing import Any, Awaitable, Callable, Dict

from config import logger as base_logger

# Context variable to store logging context across async calls
current_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "current_context", default={}
)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter injecting contextual fields into log records."""

    def process(self, msg, kwargs):
        context = current_context.get().copy()
        context.update(self.extra)
        context.update(kwargs.pop("extra", {}))
        kwargs["extra"] = context
        return msg, kwargs


def get_logger(step_name: str | None = None, context: Dict[str, Any] | None = None, **extra: Any) -> ContextLogger:
    """Return a logger enriched with execution context.

    ``context`` accepts the camelCase keys used on the wire
    (``sessionId``, ``questionId``) and maps them onto record attributes.
    """

    ctx = {}
    if context:
        ctx["session_id"] = context.get("sessionId")
        ctx["question_id"] = context.get("questionId")
    if step_name:
        ctx["step_name"] = step_name
    ctx.update({k: v for k, v in extra.items() if v is not None})
    return ContextLogger(base_logger, ctx)


def wrap_handler(step_name: str, func: Callable[[Any], Awaitable[Any]]):
    """Wrap an aiohttp request handler with contextual logging.

    Session and question ids are taken from the request's route
    parameters so every record emitted by the handler carries them.
    """

    async def wrapper(request: Any):
        match_info = getattr(request, "match_info", None) or {}
        ctx = {
            "session_id": match_info.get("session_id"),
            "question_id": match_info.get("question_id"),
            "step_name": step_name,
        }
        token = current_context.set(ctx)
        log = get_logger(step_name)
        log.info("start")
        try:
            result = await func(request)
            log.debug("response ready", extra={"status": getattr(result, "status", None)})
            log.info("done")
            return result
        except Exception:
            log.exception("failed")
            raise
        finally:
            current_context.reset(token)

    return wrapper
