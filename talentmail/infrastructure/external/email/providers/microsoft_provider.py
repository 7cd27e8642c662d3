"""Microsoft 365 provider using the Graph sendMail endpoint."""

from __future__ import annotations

from talentmail.domain.enums import EmailAccountType
from talentmail.infrastructure.external.email.payloads import build_graph_send_mail
from talentmail.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailSendResult,
    ProviderCapabilities,
)
from talentmail.infrastructure.external.email.providers.base import OAuthHTTPProvider
from talentmail.shared.telemetry.logging import get_logger
from talentmail.shared.utils.datetime import utc_now
from talentmail.shared.utils.generators import synthesize_message_id

logger = get_logger(__name__)

GRAPH_SEND_MAIL_URL = "https://graph.microsoft.com/v1.0/me/sendMail"


class MicrosoftProvider(OAuthHTTPProvider):
    """Sends as the connected Microsoft mailbox."""

    PROVIDER_NAME = "microsoft"

    @property
    def account_type(self) -> EmailAccountType:
        return EmailAccountType.MICROSOFT_OAUTH

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_inbound=True,
            supports_webhooks=False,
            supports_threading=True,
        )

    async def send(self, message: EmailMessage) -> EmailSendResult:
        await self._post_json(GRAPH_SEND_MAIL_URL, build_graph_send_mail(message))
        # sendMail answers 202 with an empty body; there is no transport id to return.
        message_id = synthesize_message_id("ms")
        logger.info(
            "Microsoft Graph accepted message %s for account %s",
            message_id,
            self.token_manager.account_id,
        )
        return EmailSendResult(provider_message_id=message_id, accepted_at=utc_now())
