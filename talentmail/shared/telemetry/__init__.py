"""Shared telemetry: logging setup and request-id log filter."""

from talentmail.shared.telemetry.logging import (
    RequestIDFilter,
    get_logger,
    setup_logging,
)

__all__ = [
    "RequestIDFilter",
    "setup_logging",
    "get_logger",
]
