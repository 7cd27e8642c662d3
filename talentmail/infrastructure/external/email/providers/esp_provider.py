"""ESP provider: the hosted Resend sending API.

Besides send, exposes sending-domain identity operations consumed by the
domain-verification UI; those are not part of the send contract.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import resend

from talentmail.domain.enums import EmailAccountType
from talentmail.infrastructure.exceptions import (
    ConfigurationError,
    EmailDeliveryException,
    PermanentProviderError,
    TransientProviderError,
    error_for_status,
)
from talentmail.infrastructure.external.email.payloads import build_resend_params
from talentmail.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailSendResult,
    ProviderCapabilities,
)
from talentmail.shared.telemetry.logging import get_logger
from talentmail.shared.utils.datetime import utc_now

logger = get_logger(__name__)

PROVIDER_NAME = "resend"

T = TypeVar("T")


def _classify_resend_error(exc: Exception) -> EmailDeliveryException:
    """Resend errors carry the HTTP status in `code` (int or numeric string)."""
    code = getattr(exc, "code", None)
    try:
        status = int(code) if code is not None else None
    except (TypeError, ValueError):
        status = None
    text = getattr(exc, "message", None) or str(exc)
    if status is None:
        return TransientProviderError(
            f"Resend request failed: {type(exc).__name__}",
            provider=PROVIDER_NAME,
            provider_error=text,
        )
    return error_for_status(
        status,
        f"Resend request failed with status {status}",
        provider=PROVIDER_NAME,
        provider_error=text,
    )


class ESPProvider:
    """Sends through the platform's Resend account."""

    def __init__(self, api_key: str | None) -> None:
        if not api_key:
            raise ConfigurationError("Resend API key required", provider=PROVIDER_NAME)
        self._api_key = api_key

    @property
    def account_type(self) -> EmailAccountType:
        return EmailAccountType.ESP

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_inbound=False,
            supports_webhooks=True,
            supports_threading=False,
        )

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a blocking SDK call in a worker thread and translate its errors."""

        def invoke() -> T:
            resend.api_key = self._api_key
            return fn(*args)

        try:
            return await asyncio.to_thread(invoke)
        except resend.exceptions.ResendError as e:
            raise _classify_resend_error(e) from e
        except OSError as e:
            raise TransientProviderError(
                f"Resend request failed: {type(e).__name__}",
                provider=PROVIDER_NAME,
                provider_error=str(e),
            ) from e

    async def send(self, message: EmailMessage) -> EmailSendResult:
        data = await self._call(resend.Emails.send, build_resend_params(message))
        message_id = data.get("id") if data else None
        if not message_id:
            raise PermanentProviderError(
                "Resend accepted the request but returned no message id",
                provider=PROVIDER_NAME,
            )
        logger.info("Resend accepted message %s", message_id)
        return EmailSendResult(provider_message_id=message_id, accepted_at=utc_now())

    async def create_domain(self, domain: str) -> dict[str, Any]:
        """Register a sending domain; the response lists the DNS records to publish."""
        return dict(await self._call(resend.Domains.create, {"name": domain}))

    async def verify_domain(self, domain_id: str) -> dict[str, Any]:
        """Ask Resend to re-check the domain's DNS records."""
        return dict(await self._call(resend.Domains.verify, domain_id))

    async def get_domain(self, domain_id: str) -> dict[str, Any]:
        return dict(await self._call(resend.Domains.get, domain_id))

    async def delete_domain(self, domain_id: str) -> dict[str, Any]:
        return dict(await self._call(resend.Domains.remove, domain_id))
