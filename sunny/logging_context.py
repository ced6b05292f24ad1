"""Conversation ID logging context for tracing turns across modules.

The orchestrator sets the caller-supplied conversation ID at the start of
every turn; loggers obtained through ``get_conversation_logger`` attach it
to each record so a single customer's turns can be grepped out of the log.

Usage:
    from sunny.logging_context import get_conversation_logger, set_conversation_id

    set_conversation_id("web-4f2a")
    logger = get_conversation_logger(__name__)
    logger.info("Quote delivered")  # record.conversation_id == "web-4f2a"
"""

import logging
from contextvars import ContextVar

NO_CONVERSATION_ID = "NO_CONVERSATION_ID"

_conversation_id: ContextVar[str] = ContextVar("conversation_id", default=NO_CONVERSATION_ID)


def set_conversation_id(conversation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _conversation_id.set(conversation_id)


def get_conversation_id() -> str:
    """Retrieve the current correlation ID."""
    return _conversation_id.get()


class ConversationIdFilter(logging.Filter):
    """Injects conversation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.conversation_id = _conversation_id.get()  # type: ignore[attr-defined]
        return True


def get_conversation_logger(name: str) -> logging.Logger:
    """Return a logger with the ConversationIdFilter attached.

    The filter adds ``conversation_id`` to each record so formatters can
    include ``%(conversation_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, ConversationIdFilter) for f in logger.filters):
        logger.addFilter(ConversationIdFilter())
    return logger
