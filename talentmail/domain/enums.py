"""Domain enumerations for the TalentMail application.

Enums represent fixed sets of domain values (account type, account status).
"""

from enum import Enum


class EmailAccountType(str, Enum):
    """Transport behind an email account.

    Closed set: the provider factory matches on every member.
    """

    ESP = "esp"
    GMAIL_OAUTH = "gmail_oauth"
    MICROSOFT_OAUTH = "microsoft_oauth"
    SMTP = "smtp"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid type values as strings."""
        return [t.value for t in cls]

    @property
    def is_oauth(self) -> bool:
        return self in (EmailAccountType.GMAIL_OAUTH, EmailAccountType.MICROSOFT_OAUTH)


class EmailAccountStatus(str, Enum):
    """Email account lifecycle status.

    Only ACTIVE accounts may be resolved into a provider.
    """

    PENDING = "pending"
    ACTIVE = "active"
    DISABLED = "disabled"
    ERROR = "error"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [s.value for s in cls]


class OAuthProvider(str, Enum):
    """OAuth mailbox providers that can be connected."""

    GOOGLE = "google"
    MICROSOFT = "microsoft"

    @property
    def account_type(self) -> EmailAccountType:
        if self is OAuthProvider.GOOGLE:
            return EmailAccountType.GMAIL_OAUTH
        return EmailAccountType.MICROSOFT_OAUTH
