"""Infrastructure services composed over repositories and providers."""

from talentmail.infrastructure.services.email_account_service import (
    EmailAccountService,
    OAuthAuthorization,
)

__all__ = [
    "EmailAccountService",
    "OAuthAuthorization",
]
