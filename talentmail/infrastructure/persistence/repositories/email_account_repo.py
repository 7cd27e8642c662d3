"""Email account repository. Returns application DTOs."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from talentmail.application.dtos.email_account import (
    EmailAccountCreate,
    EmailAccountResult,
)
from talentmail.domain.enums import EmailAccountStatus, EmailAccountType
from talentmail.domain.exceptions import ResourceNotFoundException
from talentmail.infrastructure.exceptions import ConfigurationError
from talentmail.infrastructure.persistence.models.email_account import EmailAccount
from talentmail.infrastructure.persistence.repositories.base import BaseRepository

_UPDATABLE_FIELDS = frozenset(
    {
        "display_name",
        "from_address",
        "from_name",
        "status",
        "is_default",
        "capabilities",
        "last_used_at",
        "error_message",
    }
)


def _account_to_result(a: EmailAccount) -> EmailAccountResult:
    """Map ORM EmailAccount to application EmailAccountResult."""
    try:
        account_type = EmailAccountType(a.type)
        status = EmailAccountStatus(a.status)
    except ValueError as e:
        raise ConfigurationError(
            f"Email account {a.id} has unsupported type or status: {a.type}/{a.status}"
        ) from e
    return EmailAccountResult(
        id=a.id,
        company_id=a.company_id,
        type=account_type,
        from_address=a.from_address,
        status=status,
        is_default=a.is_default,
        from_name=a.from_name,
        display_name=a.display_name,
        capabilities=dict(a.capabilities or {}),
        last_used_at=a.last_used_at,
        error_message=a.error_message,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


def _preferred_first(stmt: Select[Any]) -> Select[Any]:
    """Deterministic tie-break: most recently updated, then created, then id."""
    return stmt.order_by(
        EmailAccount.updated_at.desc(),
        EmailAccount.created_at.desc(),
        EmailAccount.id,
    ).limit(1)


class EmailAccountRepository(BaseRepository[EmailAccount]):
    """Email account repository (sending identities per company)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, EmailAccount)

    async def get_by_id(self, account_id: str) -> EmailAccountResult | None:
        account = await self.get_entity_by_id(account_id)
        return _account_to_result(account) if account else None

    async def get_by_id_and_company(
        self, account_id: str, company_id: str
    ) -> EmailAccountResult | None:
        """Return email account by id if it belongs to company."""
        result = await self.db.execute(
            select(EmailAccount).where(
                EmailAccount.id == account_id,
                EmailAccount.company_id == company_id,
            )
        )
        account = result.scalar_one_or_none()
        return _account_to_result(account) if account else None

    async def list_by_company(
        self,
        company_id: str,
        skip: int = 0,
        limit: int = 100,
    ) -> list[EmailAccountResult]:
        """Return email accounts for company (paginated, default first, then newest)."""
        result = await self.db.execute(
            select(EmailAccount)
            .where(EmailAccount.company_id == company_id)
            .order_by(
                EmailAccount.is_default.desc(),
                EmailAccount.created_at.desc(),
                EmailAccount.id,
            )
            .offset(skip)
            .limit(limit)
        )
        return [_account_to_result(a) for a in result.scalars().all()]

    async def find_default_active(self, company_id: str) -> EmailAccountResult | None:
        result = await self.db.execute(
            _preferred_first(
                select(EmailAccount).where(
                    EmailAccount.company_id == company_id,
                    EmailAccount.is_default.is_(True),
                    EmailAccount.status == EmailAccountStatus.ACTIVE.value,
                )
            )
        )
        account = result.scalar_one_or_none()
        return _account_to_result(account) if account else None

    async def find_first_active(
        self,
        company_id: str,
        account_type: EmailAccountType | None = None,
    ) -> EmailAccountResult | None:
        stmt = select(EmailAccount).where(
            EmailAccount.company_id == company_id,
            EmailAccount.status == EmailAccountStatus.ACTIVE.value,
        )
        if account_type is not None:
            stmt = stmt.where(EmailAccount.type == account_type.value)
        result = await self.db.execute(_preferred_first(stmt))
        account = result.scalar_one_or_none()
        return _account_to_result(account) if account else None

    async def create_email_account(self, data: EmailAccountCreate) -> EmailAccountResult:
        """Create an email account (caller does not need to import EmailAccount ORM)."""
        account = EmailAccount(
            company_id=data.company_id,
            type=data.type.value,
            display_name=data.display_name,
            from_address=data.from_address.strip(),
            from_name=data.from_name,
            status=data.status.value,
            is_default=data.is_default,
            capabilities=dict(data.capabilities),
        )
        created = await self.create(account)
        return _account_to_result(created)

    async def update_email_account(
        self, account_id: str, **fields: Any
    ) -> EmailAccountResult:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update email account fields: {sorted(unknown)}")
        account = await self.get_entity_by_id(account_id)
        if account is None:
            raise ResourceNotFoundException("email_account", account_id)
        for name, value in fields.items():
            if isinstance(value, (EmailAccountStatus, EmailAccountType)):
                value = value.value
            setattr(account, name, value)
        updated = await self.update(account)
        return _account_to_result(updated)

    async def clear_defaults(self, company_id: str, *, except_id: str | None = None) -> int:
        stmt = (
            update(EmailAccount)
            .where(
                EmailAccount.company_id == company_id,
                EmailAccount.is_default.is_(True),
            )
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        if except_id is not None:
            stmt = stmt.where(EmailAccount.id != except_id)
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def delete_email_account(self, account_id: str) -> None:
        account = await self.get_entity_by_id(account_id)
        if account is None:
            raise ResourceNotFoundException("email_account", account_id)
        await self.delete(account)
