"""Gmail provider: raw MIME message sent through the Gmail API."""

from __future__ import annotations

from talentmail.domain.enums import EmailAccountType
from talentmail.infrastructure.exceptions import PermanentProviderError
from talentmail.infrastructure.external.email.payloads import (
    build_mime_message,
    encode_gmail_raw,
)
from talentmail.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailSendResult,
    ProviderCapabilities,
)
from talentmail.infrastructure.external.email.providers.base import OAuthHTTPProvider
from talentmail.shared.telemetry.logging import get_logger
from talentmail.shared.utils.datetime import utc_now

logger = get_logger(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"


class GmailProvider(OAuthHTTPProvider):
    """Sends as the connected Google mailbox (users.messages.send)."""

    PROVIDER_NAME = "gmail"

    @property
    def account_type(self) -> EmailAccountType:
        return EmailAccountType.GMAIL_OAUTH

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_inbound=True,
            supports_webhooks=False,
            supports_threading=True,
        )

    async def send(self, message: EmailMessage) -> EmailSendResult:
        raw = encode_gmail_raw(build_mime_message(message))
        response = await self._post_json(GMAIL_SEND_URL, {"raw": raw})
        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None
        if not message_id:
            raise PermanentProviderError(
                "Gmail accepted the request but returned no message id",
                provider=self.PROVIDER_NAME,
                provider_error=response.text,
                status_code=response.status_code,
            )
        logger.info(
            "Gmail accepted message %s for account %s",
            message_id,
            self.token_manager.account_id,
        )
        return EmailSendResult(provider_message_id=message_id, accepted_at=utc_now())
