"""Email provider factory: resolves an account and builds its provider.

Secrets are read and decrypted fresh on every resolution. OAuth providers
receive a token store that merges refreshed tokens back into the stored
secret with an atomic read-modify-write.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, assert_never

import httpx

from talentmail.application.dtos.email_account import EmailAccountResult
from talentmail.application.interfaces.repositories import (
    ICredentialStore,
    IEmailAccountReader,
)
from talentmail.core.config import Settings, get_settings
from talentmail.domain.enums import EmailAccountType, OAuthProvider
from talentmail.domain.exceptions import CredentialException, ResourceNotFoundException
from talentmail.infrastructure.exceptions import AccountStateError, ConfigurationError
from talentmail.infrastructure.external.email.oauth_drivers import OAuthDriverRegistry
from talentmail.infrastructure.external.email.protocols import (
    ICredentialEncryptor,
    IEmailProvider,
    TokenSet,
)
from talentmail.infrastructure.external.email.providers.esp_provider import ESPProvider
from talentmail.infrastructure.external.email.providers.gmail_provider import GmailProvider
from talentmail.infrastructure.external.email.providers.microsoft_provider import (
    MicrosoftProvider,
)
from talentmail.infrastructure.external.email.providers.smtp_provider import (
    SMTPProvider,
    SmtpConfig,
)
from talentmail.infrastructure.external.email.token_lifecycle import (
    ITokenRefresher,
    RefreshLockRegistry,
    TokenLifecycleManager,
    default_refresh_locks,
)
from talentmail.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

RefresherFactory = Callable[[OAuthProvider], ITokenRefresher]


@dataclass(frozen=True)
class ResolvedProvider:
    """Provider plus the sender identity the caller stamps onto messages."""

    provider: IEmailProvider
    email_account_id: str
    from_address: str
    from_name: str | None


def decode_secret(encryptor: ICredentialEncryptor, blob: str, account_id: str) -> dict[str, Any]:
    """Decrypt a stored blob into its JSON object.

    Raises:
        ConfigurationError: Blob cannot be decrypted or is not a JSON object.
    """
    try:
        return encryptor.decrypt_json(blob)
    except CredentialException as e:
        raise ConfigurationError(
            f"Stored credentials for account {account_id} cannot be read",
            provider_error=e.message,
        ) from e


class CredentialTokenStore:
    """ITokenStore that keeps OAuth tokens inside the encrypted account secret."""

    def __init__(self, credentials: ICredentialStore, encryptor: ICredentialEncryptor) -> None:
        self._credentials = credentials
        self._encryptor = encryptor

    async def persist(self, account_id: str, tokens: TokenSet) -> None:
        def merge(blob: str) -> str:
            data = decode_secret(self._encryptor, blob, account_id)
            data.update(tokens.to_secret_fields())
            return self._encryptor.encrypt_json(data)

        try:
            await self._credentials.update_encrypted(account_id, merge)
        except ResourceNotFoundException as e:
            raise AccountStateError(
                "Email account credentials were removed during token refresh",
                account_id=account_id,
            ) from e

    async def load(self, account_id: str) -> TokenSet | None:
        blob = await self._credentials.get_encrypted(account_id)
        if blob is None:
            return None
        return TokenSet.from_secret(decode_secret(self._encryptor, blob, account_id))


class EmailProviderFactory:
    """Builds the provider for an email account, or for a company's default account."""

    def __init__(
        self,
        accounts: IEmailAccountReader,
        credentials: ICredentialStore,
        encryptor: ICredentialEncryptor,
        *,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        refresh_locks: RefreshLockRegistry | None = None,
        refresher_factory: RefresherFactory | None = None,
    ) -> None:
        self._accounts = accounts
        self._credentials = credentials
        self._encryptor = encryptor
        self._settings = settings or get_settings()
        self._http = http_client
        self._locks = refresh_locks or default_refresh_locks
        self._refresher_factory = refresher_factory or self._driver_for
        self._token_store = CredentialTokenStore(credentials, encryptor)

    async def get_email_provider(self, account_id: str) -> IEmailProvider:
        """Provider for one account.

        Raises:
            AccountStateError: Account missing, not active, or without stored credentials.
            ConfigurationError: Credentials undecryptable or platform configuration missing.
        """
        account = await self._accounts.get_by_id(account_id)
        if account is None:
            raise AccountStateError("Email account not found", account_id=account_id)
        return await self._build(account)

    async def get_default_provider(self, company_id: str) -> ResolvedProvider:
        """Provider for the company's default account.

        Order: active default account, else first active ESP account, else
        first active account of any type.

        Raises:
            AccountStateError: The company has no active email account.
        """
        account = (
            await self._accounts.find_default_active(company_id)
            or await self._accounts.find_first_active(company_id, EmailAccountType.ESP)
            or await self._accounts.find_first_active(company_id)
        )
        if account is None:
            raise AccountStateError(
                "No active email account found for company",
                company_id=company_id,
            )
        logger.debug(
            "Resolved account %s (%s) for company %s",
            account.id,
            account.type.value,
            company_id,
        )
        return ResolvedProvider(
            provider=await self._build(account),
            email_account_id=account.id,
            from_address=account.from_address,
            from_name=account.from_name,
        )

    async def _build(self, account: EmailAccountResult) -> IEmailProvider:
        if not account.is_active:
            raise AccountStateError(
                f"Email account status: {account.status.value}",
                account_id=account.id,
                status=account.status.value,
            )
        match account.type:
            case EmailAccountType.ESP:
                return ESPProvider(_secret(self._settings.resend_api_key))
            case EmailAccountType.GMAIL_OAUTH:
                manager = await self._token_manager(account, OAuthProvider.GOOGLE)
                return GmailProvider(
                    manager,
                    http_client=self._http,
                    timeout=self._settings.email_http_timeout_seconds,
                )
            case EmailAccountType.MICROSOFT_OAUTH:
                manager = await self._token_manager(account, OAuthProvider.MICROSOFT)
                return MicrosoftProvider(
                    manager,
                    http_client=self._http,
                    timeout=self._settings.email_http_timeout_seconds,
                )
            case EmailAccountType.SMTP:
                secret = await self._load_secret(account)
                return SMTPProvider(
                    SmtpConfig.from_secret(secret),
                    timeout=self._settings.smtp_timeout_seconds,
                )
            case _:
                assert_never(account.type)

    async def _load_secret(self, account: EmailAccountResult) -> dict[str, Any]:
        blob = await self._credentials.get_encrypted(account.id)
        if blob is None:
            raise AccountStateError(
                "Email account has no stored credentials; reconnect required",
                account_id=account.id,
            )
        return decode_secret(self._encryptor, blob, account.id)

    async def _token_manager(
        self, account: EmailAccountResult, provider: OAuthProvider
    ) -> TokenLifecycleManager:
        secret = await self._load_secret(account)
        return TokenLifecycleManager(
            account.id,
            TokenSet.from_secret(secret),
            self._refresher_factory(provider),
            self._token_store,
            buffer_seconds=self._settings.token_refresh_buffer_seconds,
            locks=self._locks,
        )

    def _driver_for(self, provider: OAuthProvider) -> ITokenRefresher:
        return OAuthDriverRegistry.from_settings(
            provider, self._settings, http_client=self._http
        )


def _secret(value: Any) -> str | None:
    return value.get_secret_value() if value is not None else None
