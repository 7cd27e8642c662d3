"""Tests for TokenLifecycleManager (buffer, lazy refresh, persist, per-account lock)."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from talentmail.infrastructure.exceptions import AuthError
from talentmail.infrastructure.external.email.protocols import TokenSet
from talentmail.infrastructure.external.email.token_lifecycle import (
    RefreshLockRegistry,
    TokenLifecycleManager,
    TokenState,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _clock() -> datetime:
    return NOW


def _tokens(expires_in_seconds: int, *, refresh: str | None = "rt-1") -> TokenSet:
    return TokenSet(
        access_token="at-old",
        refresh_token=refresh,
        expires_at=NOW + timedelta(seconds=expires_in_seconds),
    )


class RecordingStore:
    """ITokenStore that records persists; load returns the last persisted set."""

    def __init__(self) -> None:
        self.persisted: list[TokenSet] = []

    async def persist(self, account_id: str, tokens: TokenSet) -> None:
        self.persisted.append(tokens)

    async def load(self, account_id: str) -> TokenSet | None:
        return self.persisted[-1] if self.persisted else None


def _manager(tokens, refresher, store=None, **kwargs) -> TokenLifecycleManager:
    return TokenLifecycleManager(
        "acct-1",
        tokens,
        refresher,
        store,
        clock=_clock,
        locks=RefreshLockRegistry(),
        **kwargs,
    )


async def test_fresh_token_is_returned_without_refresh(make_refresher) -> None:
    """Token expiring well outside the buffer is used as-is."""
    refresher = make_refresher()
    store = RecordingStore()
    manager = _manager(_tokens(3600), refresher, store)
    assert await manager.ensure_valid_token() == "at-old"
    assert refresher.calls == []
    assert store.persisted == []
    assert manager.state is TokenState.VALID


async def test_token_inside_buffer_is_refreshed_and_persisted(make_refresher) -> None:
    """Token expiring in 30s (buffer 60s) triggers one refresh and one persist."""
    new = TokenSet("at-new", None, NOW + timedelta(hours=1))
    refresher = make_refresher(new)
    store = RecordingStore()
    manager = _manager(_tokens(30), refresher, store)

    assert await manager.ensure_valid_token() == "at-new"
    assert refresher.calls == ["rt-1"]
    assert len(store.persisted) == 1
    # No new refresh token issued: the held one is kept.
    assert store.persisted[0].refresh_token == "rt-1"
    assert store.persisted[0].access_token == "at-new"
    assert manager.state is TokenState.VALID


async def test_rotated_refresh_token_replaces_old_one(make_refresher) -> None:
    """A refresh response carrying a new refresh token is persisted with it."""
    refresher = make_refresher(TokenSet("at-new", "rt-2", NOW + timedelta(hours=1)))
    store = RecordingStore()
    manager = _manager(_tokens(-10), refresher, store)
    await manager.ensure_valid_token()
    assert store.persisted[0].refresh_token == "rt-2"
    assert manager.tokens.refresh_token == "rt-2"


async def test_buffer_boundary_is_exclusive(make_refresher) -> None:
    """Exactly at expiry minus buffer the token is no longer considered fresh."""
    refresher = make_refresher(TokenSet("at-new", None, NOW + timedelta(hours=1)))
    manager = _manager(_tokens(60), refresher, RecordingStore(), buffer_seconds=60)
    assert manager.state is TokenState.NEAR_EXPIRY
    await manager.ensure_valid_token()
    assert refresher.calls == ["rt-1"]


async def test_naive_expiry_is_read_as_utc(make_refresher) -> None:
    """A timezone-less expiry compares as UTC instead of failing."""
    naive = TokenSet("at-old", "rt-1", (NOW + timedelta(hours=1)).replace(tzinfo=None))
    refresher = make_refresher()
    manager = _manager(naive, refresher, RecordingStore())
    assert manager.state is TokenState.VALID
    assert await manager.ensure_valid_token() == "at-old"
    assert refresher.calls == []


async def test_refresh_failure_raises_auth_error_and_does_not_persist(make_refresher) -> None:
    """Refresh error propagates; nothing persisted; state FAILED."""
    refresher = make_refresher(AuthError("invalid_grant", provider="google"))
    store = RecordingStore()
    manager = _manager(_tokens(10), refresher, store)
    with pytest.raises(AuthError):
        await manager.ensure_valid_token()
    assert store.persisted == []
    assert manager.state is TokenState.FAILED


async def test_missing_refresh_token_raises_auth_error(make_refresher) -> None:
    """Expired token without a refresh token cannot be renewed."""
    refresher = make_refresher()
    manager = _manager(_tokens(-1, refresh=None), refresher, RecordingStore())
    with pytest.raises(AuthError, match="reconnect"):
        await manager.ensure_valid_token()
    assert refresher.calls == []


async def test_concurrent_sends_share_one_refresh(make_refresher) -> None:
    """Two managers for the same account refresh once; the second adopts stored tokens."""
    locks = RefreshLockRegistry()
    store = RecordingStore()
    gate = asyncio.Event()

    class SlowRefresher:
        provider_name = "Fake"

        def __init__(self) -> None:
            self.calls = 0

        async def refresh_access_token(self, refresh_token: str) -> TokenSet:
            self.calls += 1
            await gate.wait()
            return TokenSet("at-new", None, NOW + timedelta(hours=1))

    refresher = SlowRefresher()
    first = TokenLifecycleManager(
        "acct-1", _tokens(5), refresher, store, clock=_clock, locks=locks
    )
    second = TokenLifecycleManager(
        "acct-1", _tokens(5), refresher, store, clock=_clock, locks=locks
    )
    tasks = [
        asyncio.create_task(first.ensure_valid_token()),
        asyncio.create_task(second.ensure_valid_token()),
    ]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert results == ["at-new", "at-new"]
    assert refresher.calls == 1
    assert len(store.persisted) == 1


async def test_different_accounts_do_not_share_a_lock() -> None:
    """Locks are keyed by account id."""
    locks = RefreshLockRegistry()
    a = locks.lock_for("a")
    assert locks.lock_for("a") is a
    assert locks.lock_for("b") is not a
