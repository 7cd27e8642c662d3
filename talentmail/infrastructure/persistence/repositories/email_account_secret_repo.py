"""Encrypted secret rows for email accounts.

EmailAccountSecretRepository works inside the caller's session.
SqlCredentialStore opens its own short transactions so a token refresh
persisted during a send commits even if the surrounding request rolls back.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talentmail.domain.exceptions import ResourceNotFoundException
from talentmail.infrastructure.exceptions import TransientProviderError
from talentmail.infrastructure.persistence.models.email_account import (
    EmailAccountSecret,
)
from talentmail.infrastructure.persistence.repositories.base import BaseRepository
from talentmail.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class EmailAccountSecretRepository(BaseRepository[EmailAccountSecret]):
    """One encrypted blob per email account."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, EmailAccountSecret)

    async def get_by_account(
        self, account_id: str, *, for_update: bool = False
    ) -> EmailAccountSecret | None:
        stmt = select(EmailAccountSecret).where(
            EmailAccountSecret.email_account_id == account_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_encrypted(self, account_id: str) -> str | None:
        secret = await self.get_by_account(account_id)
        return secret.encrypted_data if secret else None

    async def upsert(self, account_id: str, encrypted_data: str) -> None:
        secret = await self.get_by_account(account_id, for_update=True)
        if secret is None:
            await self.create(
                EmailAccountSecret(
                    email_account_id=account_id,
                    encrypted_data=encrypted_data,
                )
            )
            return
        secret.encrypted_data = encrypted_data
        await self.update(secret)

    async def delete_by_account(self, account_id: str) -> None:
        await self.db.execute(
            delete(EmailAccountSecret).where(
                EmailAccountSecret.email_account_id == account_id
            )
        )
        await self.db.flush()


class SqlCredentialStore:
    """ICredentialStore over SQL: each call runs in its own committed transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_encrypted(self, account_id: str) -> str | None:
        try:
            async with self._session_factory() as session:
                return await EmailAccountSecretRepository(session).get_encrypted(account_id)
        except SQLAlchemyError as e:
            raise _store_unavailable(e) from e

    async def update_encrypted(
        self, account_id: str, transform: Callable[[str], str]
    ) -> None:
        """Read-modify-write under a row lock; commits before returning."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    repo = EmailAccountSecretRepository(session)
                    secret = await repo.get_by_account(account_id, for_update=True)
                    if secret is None:
                        raise ResourceNotFoundException("email_account_secret", account_id)
                    secret.encrypted_data = transform(secret.encrypted_data)
                    await repo.update(secret)
        except SQLAlchemyError as e:
            logger.error("Credential update failed for account %s: %s", account_id, type(e).__name__)
            raise _store_unavailable(e) from e
        logger.debug("Updated credential blob for account %s", account_id)


def _store_unavailable(exc: SQLAlchemyError) -> TransientProviderError:
    return TransientProviderError(
        "Credential store unavailable",
        provider="credential_store",
        provider_error=type(exc).__name__,
    )
