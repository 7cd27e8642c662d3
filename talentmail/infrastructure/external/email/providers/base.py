"""Shared plumbing for OAuth mailbox providers that send over bearer-authenticated HTTP."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from talentmail.infrastructure.exceptions import TransientProviderError, error_for_status
from talentmail.infrastructure.external.email.token_lifecycle import TokenLifecycleManager
from talentmail.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class OAuthHTTPProvider:
    """Base for Gmail and Microsoft providers: token lifecycle + authenticated POST."""

    PROVIDER_NAME: str = ""

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._tokens = token_manager
        self._shared_http = http_client
        self._timeout = timeout

    @property
    def token_manager(self) -> TokenLifecycleManager:
        return self._tokens

    @asynccontextmanager
    async def _http_cm(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield shared HTTP client or a short-lived one (connection reuse when shared)."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def _post_json(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        """Ensure a fresh token, POST JSON, and raise a typed error on failure."""
        access_token = await self._tokens.ensure_valid_token()
        try:
            async with self._http_cm() as client:
                response = await client.post(
                    url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.warning("%s send transport error: %s", self.PROVIDER_NAME, type(e).__name__)
            raise TransientProviderError(
                f"{self.PROVIDER_NAME} send failed: {type(e).__name__}",
                provider=self.PROVIDER_NAME,
                provider_error=str(e),
            ) from e
        if response.is_success:
            return response
        logger.warning(
            "%s send rejected for account %s: status=%d",
            self.PROVIDER_NAME,
            self._tokens.account_id,
            response.status_code,
        )
        raise error_for_status(
            response.status_code,
            f"{self.PROVIDER_NAME} send failed with status {response.status_code}",
            provider=self.PROVIDER_NAME,
            provider_error=response.text,
        )
