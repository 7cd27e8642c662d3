"""Pytest configuration and fixtures for talentmail.

Required settings are set before importing talentmail so create_app() and
get_settings() validate. HTTP tests use talentmail.main:app with dependency
overrides; repository tests use an in-memory SQLite database.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-talentmail-0123456789")
os.environ.setdefault("ENCRYPTION_SALT", "test-encryption-salt")
os.environ.setdefault("DATABASE_URL", "")

import itertools
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from talentmail.application.dtos.email_account import (
    EmailAccountCreate,
    EmailAccountResult,
)
from talentmail.core.config import Settings, get_settings
from talentmail.domain.enums import EmailAccountType
from talentmail.domain.exceptions import ResourceNotFoundException
from talentmail.infrastructure.external.email.encryption import CredentialEncryptor
from talentmail.infrastructure.external.email.protocols import TokenSet
from talentmail.infrastructure.persistence import models  # noqa: F401 (register tables)
from talentmail.infrastructure.persistence.database import Base
from talentmail.main import app


class InMemoryEmailAccounts:
    """IEmailAccountRepository over a dict; timestamps advance one second per write."""

    def __init__(self) -> None:
        self.rows: dict[str, EmailAccountResult] = {}
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _tick(self) -> datetime:
        return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=next(self._clock))

    def _preferred(self, rows: list[EmailAccountResult]) -> EmailAccountResult | None:
        rows = sorted(rows, key=lambda a: a.id)
        rows.sort(key=lambda a: (a.updated_at, a.created_at), reverse=True)
        return rows[0] if rows else None

    async def get_by_id(self, account_id: str) -> EmailAccountResult | None:
        return self.rows.get(account_id)

    async def get_by_id_and_company(
        self, account_id: str, company_id: str
    ) -> EmailAccountResult | None:
        account = self.rows.get(account_id)
        return account if account and account.company_id == company_id else None

    async def list_by_company(
        self, company_id: str, skip: int = 0, limit: int = 100
    ) -> list[EmailAccountResult]:
        rows = [a for a in self.rows.values() if a.company_id == company_id]
        rows.sort(key=lambda a: a.created_at, reverse=True)
        rows.sort(key=lambda a: a.is_default, reverse=True)
        return rows[skip : skip + limit]

    async def find_default_active(self, company_id: str) -> EmailAccountResult | None:
        return self._preferred(
            [
                a
                for a in self.rows.values()
                if a.company_id == company_id and a.is_default and a.is_active
            ]
        )

    async def find_first_active(
        self, company_id: str, account_type: EmailAccountType | None = None
    ) -> EmailAccountResult | None:
        return self._preferred(
            [
                a
                for a in self.rows.values()
                if a.company_id == company_id
                and a.is_active
                and (account_type is None or a.type is account_type)
            ]
        )

    async def create_email_account(self, data: EmailAccountCreate) -> EmailAccountResult:
        now = self._tick()
        account = EmailAccountResult(
            id=f"acct-{next(self._ids)}",
            company_id=data.company_id,
            type=data.type,
            from_address=data.from_address,
            status=data.status,
            is_default=data.is_default,
            from_name=data.from_name,
            display_name=data.display_name,
            capabilities=dict(data.capabilities),
            created_at=now,
            updated_at=now,
        )
        self.rows[account.id] = account
        return account

    async def update_email_account(self, account_id: str, **fields: Any) -> EmailAccountResult:
        if account_id not in self.rows:
            raise ResourceNotFoundException("email_account", account_id)
        updated = replace(self.rows[account_id], updated_at=self._tick(), **fields)
        self.rows[account_id] = updated
        return updated

    async def clear_defaults(self, company_id: str, *, except_id: str | None = None) -> int:
        cleared = 0
        for account in list(self.rows.values()):
            if account.company_id == company_id and account.is_default and account.id != except_id:
                self.rows[account.id] = replace(account, is_default=False)
                cleared += 1
        return cleared

    async def delete_email_account(self, account_id: str) -> None:
        if self.rows.pop(account_id, None) is None:
            raise ResourceNotFoundException("email_account", account_id)


class InMemorySecrets:
    """Secret repository and credential store sharing one dict of encrypted blobs."""

    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}
        self.update_calls = 0

    async def get_encrypted(self, account_id: str) -> str | None:
        return self.blobs.get(account_id)

    async def upsert(self, account_id: str, encrypted_data: str) -> None:
        self.blobs[account_id] = encrypted_data

    async def delete_by_account(self, account_id: str) -> None:
        self.blobs.pop(account_id, None)

    async def update_encrypted(
        self, account_id: str, transform: Callable[[str], str]
    ) -> None:
        if account_id not in self.blobs:
            raise ResourceNotFoundException("email_account_secret", account_id)
        self.update_calls += 1
        self.blobs[account_id] = transform(self.blobs[account_id])


class FakeRefresher:
    """ITokenRefresher returning scripted token sets (or raising)."""

    provider_name = "Fake"

    def __init__(self, *results: TokenSet | Exception) -> None:
        self._results = list(results)
        self.calls: list[str] = []

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        self.calls.append(refresh_token)
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture(scope="session")
def encryptor() -> CredentialEncryptor:
    """One encryptor per run (key derivation is deliberately slow)."""
    get_settings.cache_clear()
    return CredentialEncryptor(get_settings())


@pytest.fixture
def accounts() -> InMemoryEmailAccounts:
    return InMemoryEmailAccounts()


@pytest.fixture
def secret_store() -> InMemorySecrets:
    return InMemorySecrets()


@pytest.fixture
def make_refresher() -> type[FakeRefresher]:
    return FakeRefresher


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory over a fresh in-memory SQLite schema (shared connection)."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncSession:
    """Database session for repository tests. Rolls back after test."""
    async with session_factory() as session:
        yield session
        await session.rollback()
