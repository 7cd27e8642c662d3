"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from talentmail.domain.enums import EmailAccountType

if TYPE_CHECKING:
    from talentmail.application.dtos.email_account import (
        EmailAccountCreate,
        EmailAccountResult,
    )


# Email account repository interface
class IEmailAccountReader(Protocol):
    """Lookups needed to resolve a sending account."""

    async def get_by_id(self, account_id: str) -> EmailAccountResult | None:
        """Return account by id regardless of company, or None."""

    async def find_default_active(self, company_id: str) -> EmailAccountResult | None:
        """Return the company's active default account (latest updated wins), or None."""

    async def find_first_active(
        self,
        company_id: str,
        account_type: EmailAccountType | None = None,
    ) -> EmailAccountResult | None:
        """Return the preferred active account, optionally of one type, or None."""


class IEmailAccountRepository(IEmailAccountReader, Protocol):
    """Email account persistence for the account management service."""

    async def get_by_id_and_company(
        self, account_id: str, company_id: str
    ) -> EmailAccountResult | None:
        """Return account by id if it belongs to company."""

    async def list_by_company(
        self, company_id: str, skip: int = 0, limit: int = 100
    ) -> list[EmailAccountResult]:
        """Return the company's accounts, newest first."""

    async def create_email_account(self, data: EmailAccountCreate) -> EmailAccountResult:
        """Insert an account row and return it."""

    async def update_email_account(
        self, account_id: str, **fields: Any
    ) -> EmailAccountResult:
        """Apply column updates; raises ResourceNotFoundException if missing."""

    async def clear_defaults(self, company_id: str, *, except_id: str | None = None) -> int:
        """Unset is_default on the company's accounts; returns rows changed."""

    async def delete_email_account(self, account_id: str) -> None:
        """Delete the account row."""


# Email account secret interfaces
class IEmailAccountSecretRepository(Protocol):
    """Secret rows inside the caller's transaction."""

    async def get_encrypted(self, account_id: str) -> str | None:
        """Return the encrypted blob for an account, or None."""

    async def upsert(self, account_id: str, encrypted_data: str) -> None:
        """Create or replace the account's encrypted blob."""

    async def delete_by_account(self, account_id: str) -> None:
        """Delete the account's secret row if present."""


class ICredentialStore(Protocol):
    """Secret store with its own transactions (used during sends)."""

    async def get_encrypted(self, account_id: str) -> str | None:
        """Return the encrypted blob for an account, or None."""

    async def update_encrypted(
        self, account_id: str, transform: Callable[[str], str]
    ) -> None:
        """Atomically replace the blob with transform(current blob) and commit.

        Raises ResourceNotFoundException when the account has no secret row.
        """
