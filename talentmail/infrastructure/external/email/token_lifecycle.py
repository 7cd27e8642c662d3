"""Access-token lifecycle for OAuth mailbox providers.

Refresh is lazy: every send checks freshness and, when the token is inside
the expiry buffer, performs the refresh-grant exchange before the transport
call. Refreshes of one account are serialized through a per-account lock so
concurrent sends cannot both spend the same refresh token.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol
from weakref import WeakValueDictionary

from talentmail.infrastructure.exceptions import AuthError, EmailDeliveryException
from talentmail.infrastructure.external.email.protocols import ITokenStore, TokenSet
from talentmail.shared.telemetry.logging import get_logger
from talentmail.shared.utils.datetime import utc_now

logger = get_logger(__name__)

DEFAULT_REFRESH_BUFFER_SECONDS = 60


class TokenState(str, Enum):
    """Freshness of the held access token."""

    VALID = "valid"
    NEAR_EXPIRY = "near_expiry"
    REFRESHING = "refreshing"
    FAILED = "failed"


class ITokenRefresher(Protocol):
    """Refresh-grant exchange (implemented by the OAuth drivers)."""

    @property
    def provider_name(self) -> str: ...

    async def refresh_access_token(self, refresh_token: str) -> TokenSet: ...


class RefreshLockRegistry:
    """One asyncio.Lock per account id; entries vanish once no task holds them."""

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock


# Process-wide default so provider instances built per request still share locks.
default_refresh_locks = RefreshLockRegistry()


class TokenLifecycleManager:
    """Keeps one account's access token usable for the next API call."""

    def __init__(
        self,
        account_id: str,
        tokens: TokenSet,
        refresher: ITokenRefresher,
        store: ITokenStore | None = None,
        *,
        buffer_seconds: int = DEFAULT_REFRESH_BUFFER_SECONDS,
        locks: RefreshLockRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.account_id = account_id
        self._tokens = tokens
        self._refresher = refresher
        self._store = store
        self._buffer = timedelta(seconds=buffer_seconds)
        self._locks = locks or default_refresh_locks
        self._clock = clock
        self._state = self._evaluate(tokens)

    @property
    def tokens(self) -> TokenSet:
        return self._tokens

    @property
    def state(self) -> TokenState:
        """Last known state; VALID/NEAR_EXPIRY are re-evaluated against the clock."""
        if self._state in (TokenState.REFRESHING, TokenState.FAILED):
            return self._state
        return self._evaluate(self._tokens)

    def _is_fresh(self, tokens: TokenSet) -> bool:
        expires_at = tokens.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return bool(tokens.access_token) and self._clock() < expires_at - self._buffer

    def _evaluate(self, tokens: TokenSet) -> TokenState:
        return TokenState.VALID if self._is_fresh(tokens) else TokenState.NEAR_EXPIRY

    async def ensure_valid_token(self) -> str:
        """Return a usable access token, refreshing (and persisting) first if needed.

        Raises:
            AuthError: Refresh exchange failed or no refresh token is held.
            ConfigurationError: OAuth client credentials are not configured.
        """
        if self._is_fresh(self._tokens):
            self._state = TokenState.VALID
            return self._tokens.access_token
        async with self._locks.lock_for(self.account_id):
            if await self._adopt_stored_tokens():
                return self._tokens.access_token
            return await self._refresh()

    async def _adopt_stored_tokens(self) -> bool:
        """Use tokens another task persisted while we waited for the lock."""
        if self._store is None:
            return False
        stored = await self._store.load(self.account_id)
        if stored is None or not self._is_fresh(stored):
            return False
        logger.debug("Adopted tokens refreshed concurrently for account %s", self.account_id)
        self._tokens = stored
        self._state = TokenState.VALID
        return True

    async def _refresh(self) -> str:
        refresh_token = self._tokens.refresh_token
        if not refresh_token:
            self._state = TokenState.FAILED
            raise AuthError(
                f"{self._refresher.provider_name} account has no refresh token; reconnect required",
            )
        self._state = TokenState.REFRESHING
        try:
            refreshed = await self._refresher.refresh_access_token(refresh_token)
        except EmailDeliveryException:
            self._state = TokenState.FAILED
            logger.warning(
                "Token refresh failed for account %s (%s)",
                self.account_id,
                self._refresher.provider_name,
            )
            raise
        except BaseException:
            self._state = TokenState.FAILED
            raise
        self._tokens = self._tokens.merged_with(refreshed)
        self._state = TokenState.VALID
        if self._store is not None:
            await self._store.persist(self.account_id, self._tokens)
        logger.info(
            "Refreshed %s access token for account %s",
            self._refresher.provider_name,
            self.account_id,
        )
        return self._tokens.access_token
