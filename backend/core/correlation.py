"""
Correlation ID generation and context management.

Provides short IDs that tie together every log line and domain exception
produced while handling one request or one moderation evaluation.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Context variable for request-scoped correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short, unique correlation ID.

    Returns:
        8-character hexadecimal string (e.g., "abc123de").
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Return the current correlation ID, or empty string if not set."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current context."""
    correlation_id_var.set(correlation_id)


@contextmanager
def ensure_correlation_id() -> Iterator[str]:
    """
    Reuse the ambient correlation ID or bind a fresh one for the block.

    Callers that already run inside a request keep the request's ID; direct
    invocations (scripts, tests) get their own ID which is unbound on exit.
    """
    current = correlation_id_var.get()
    if current:
        yield current
        return

    token = correlation_id_var.set(generate_correlation_id())
    try:
        yield correlation_id_var.get()
    finally:
        correlation_id_var.reset(token)
