"""Email delivery: protocols, factory, encryption, OAuth drivers, providers."""

from talentmail.infrastructure.external.email.encryption import CredentialEncryptor
from talentmail.infrastructure.external.email.factory import (
    CredentialTokenStore,
    EmailProviderFactory,
    ResolvedProvider,
)
from talentmail.infrastructure.external.email.oauth_drivers import (
    GoogleOAuthDriver,
    MicrosoftOAuthDriver,
    OAuthDriver,
    OAuthDriverRegistry,
    OAuthUserInfo,
)
from talentmail.infrastructure.external.email.oauth_state import (
    OAuthState,
    OAuthStateManager,
)
from talentmail.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailSendResult,
    IEmailProvider,
    ProviderCapabilities,
    TokenSet,
)
from talentmail.infrastructure.external.email.token_lifecycle import (
    RefreshLockRegistry,
    TokenLifecycleManager,
    TokenState,
)

__all__ = [
    "CredentialEncryptor",
    "CredentialTokenStore",
    "EmailMessage",
    "EmailProviderFactory",
    "EmailSendResult",
    "GoogleOAuthDriver",
    "IEmailProvider",
    "MicrosoftOAuthDriver",
    "OAuthDriver",
    "OAuthDriverRegistry",
    "OAuthState",
    "OAuthStateManager",
    "OAuthUserInfo",
    "ProviderCapabilities",
    "RefreshLockRegistry",
    "ResolvedProvider",
    "TokenLifecycleManager",
    "TokenSet",
    "TokenState",
]
