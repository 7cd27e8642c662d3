"""Email providers: Resend (ESP), Gmail, Microsoft Graph, SMTP."""

from talentmail.infrastructure.external.email.providers.esp_provider import ESPProvider
from talentmail.infrastructure.external.email.providers.gmail_provider import GmailProvider
from talentmail.infrastructure.external.email.providers.microsoft_provider import (
    MicrosoftProvider,
)
from talentmail.infrastructure.external.email.providers.smtp_provider import (
    SMTPProvider,
    SmtpConfig,
)

__all__ = [
    "ESPProvider",
    "GmailProvider",
    "MicrosoftProvider",
    "SMTPProvider",
    "SmtpConfig",
]
