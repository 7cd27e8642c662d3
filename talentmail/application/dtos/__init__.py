"""Application DTOs (no ORM dependency)."""

from talentmail.application.dtos.email_account import (
    EmailAccountCreate,
    EmailAccountResult,
)

__all__ = [
    "EmailAccountCreate",
    "EmailAccountResult",
]
