"""Request context shared with logging.

RequestIDMiddleware sets the current request id in this context variable so
that log records emitted while handling the request (including provider
sends and token refreshes) carry it.
"""

from contextvars import ContextVar, Token

# Current request ID (set by middleware, read by the logging filter).
current_request_id: ContextVar[str | None] = ContextVar(
    "current_request_id", default=None
)


def set_request_id(request_id: str | None) -> Token[str | None]:
    """Set the current request ID for this context; returns a token for reset."""
    return current_request_id.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    current_request_id.reset(token)


def get_request_id() -> str | None:
    """Return the current request ID if set."""
    return current_request_id.get()
