"""Email account service: connect mailboxes, manage defaults, send test messages.

Keeps credential encryption, OAuth exchanges and SMTP verification out of
the API layer. Writes go through the caller's transaction (repositories
share the request session).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from talentmail.application.dtos.email_account import (
    EmailAccountCreate,
    EmailAccountResult,
)
from talentmail.application.interfaces.repositories import (
    IEmailAccountRepository,
    IEmailAccountSecretRepository,
)
from talentmail.domain.enums import EmailAccountStatus, EmailAccountType, OAuthProvider
from talentmail.domain.exceptions import ResourceNotFoundException, ValidationException
from talentmail.infrastructure.exceptions import AuthError, EmailDeliveryException
from talentmail.infrastructure.external.email.factory import EmailProviderFactory
from talentmail.infrastructure.external.email.oauth_drivers import OAuthDriver
from talentmail.infrastructure.external.email.oauth_state import OAuthStateManager
from talentmail.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailSendResult,
    ICredentialEncryptor,
    ProviderCapabilities,
)
from talentmail.infrastructure.external.email.providers.smtp_provider import (
    SMTPProvider,
    SmtpConfig,
)
from talentmail.shared.telemetry.logging import get_logger
from talentmail.shared.utils.datetime import utc_now

logger = get_logger(__name__)

OAUTH_CAPABILITIES = ProviderCapabilities(
    supports_inbound=True,
    supports_webhooks=False,
    supports_threading=True,
)
ESP_CAPABILITIES = ProviderCapabilities(supports_webhooks=True)
SMTP_CAPABILITIES = ProviderCapabilities()

TEST_EMAIL_SUBJECT = "Test email"
TEST_EMAIL_HTML = (
    "<p>This is a test message confirming that this email account can send mail.</p>"
)
TEST_EMAIL_TEXT = "This is a test message confirming that this email account can send mail."

DriverLookup = Callable[[OAuthProvider], OAuthDriver]
SmtpVerifier = Callable[[SmtpConfig], Awaitable[None]]


@dataclass(frozen=True)
class OAuthAuthorization:
    """Where to send the user to grant mailbox access."""

    provider: OAuthProvider
    authorization_url: str
    state: str


class EmailAccountService:
    """Create, update, delete and test email accounts for a company."""

    def __init__(
        self,
        email_account_repo: IEmailAccountRepository,
        secret_repo: IEmailAccountSecretRepository,
        credential_encryptor: ICredentialEncryptor,
        *,
        provider_factory: EmailProviderFactory | None = None,
        state_manager: OAuthStateManager | None = None,
        driver_lookup: DriverLookup | None = None,
        smtp_verifier: SmtpVerifier | None = None,
        smtp_timeout: float = 30.0,
    ) -> None:
        self._repo = email_account_repo
        self._secrets = secret_repo
        self._encryptor = credential_encryptor
        self._factory = provider_factory
        self._state = state_manager
        self._drivers = driver_lookup
        self._smtp_timeout = smtp_timeout
        self._verify_smtp = smtp_verifier or self._default_smtp_verifier

    async def _default_smtp_verifier(self, config: SmtpConfig) -> None:
        await SMTPProvider(config, timeout=self._smtp_timeout).verify_connection()

    async def list_accounts(self, company_id: str) -> list[EmailAccountResult]:
        return await self._repo.list_by_company(company_id)

    async def get_account(self, company_id: str, account_id: str) -> EmailAccountResult:
        """Return the company's account. Raises ResourceNotFoundException if not found."""
        account = await self._repo.get_by_id_and_company(account_id, company_id)
        if account is None:
            raise ResourceNotFoundException("email_account", account_id)
        return account

    async def _create_with_secret(
        self,
        data: EmailAccountCreate,
        secret: dict[str, Any] | None,
    ) -> EmailAccountResult:
        if data.is_default:
            await self._repo.clear_defaults(data.company_id)
        account = await self._repo.create_email_account(data)
        if secret is not None:
            await self._secrets.upsert(account.id, self._encryptor.encrypt_json(secret))
        logger.info(
            "Created %s email account %s for company %s",
            account.type.value,
            account.id,
            account.company_id,
        )
        return account

    async def connect_smtp(
        self,
        company_id: str,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str | None = None,
        use_tls: bool = True,
        is_default: bool = False,
        display_name: str | None = None,
    ) -> EmailAccountResult:
        """Verify the SMTP login, then store the account and its encrypted credentials.

        Raises:
            ValidationException: The server refused the connection or login.
        """
        config = SmtpConfig(
            host=host,
            port=port,
            username=username,
            password=password,
            use_tls=use_tls,
        )
        try:
            await self._verify_smtp(config)
        except EmailDeliveryException as e:
            logger.warning("SMTP connection test failed for %s:%s: %s", host, port, e.error_code)
            raise ValidationException(f"SMTP connection test failed: {e.message}") from e
        return await self._create_with_secret(
            EmailAccountCreate(
                company_id=company_id,
                type=EmailAccountType.SMTP,
                from_address=from_address,
                from_name=from_name,
                display_name=display_name or from_name or from_address,
                status=EmailAccountStatus.ACTIVE,
                is_default=is_default,
                capabilities=SMTP_CAPABILITIES.to_dict(),
            ),
            config.to_secret(),
        )

    async def create_esp_account(
        self,
        company_id: str,
        *,
        display_name: str,
        from_address: str,
        from_name: str | None = None,
        is_default: bool = False,
    ) -> EmailAccountResult:
        """ESP accounts send through the platform Resend key and store no secret."""
        if "@" not in from_address:
            raise ValidationException("from_address must be an email address", field="from_address")
        return await self._create_with_secret(
            EmailAccountCreate(
                company_id=company_id,
                type=EmailAccountType.ESP,
                from_address=from_address,
                from_name=from_name,
                display_name=display_name,
                status=EmailAccountStatus.ACTIVE,
                is_default=is_default,
                capabilities=ESP_CAPABILITIES.to_dict(),
            ),
            None,
        )

    def _driver(self, provider: OAuthProvider) -> OAuthDriver:
        if self._drivers is None:
            raise RuntimeError("EmailAccountService was built without OAuth drivers")
        return self._drivers(provider)

    def _state_manager(self) -> OAuthStateManager:
        if self._state is None:
            raise RuntimeError("EmailAccountService was built without an OAuth state manager")
        return self._state

    def start_oauth(self, company_id: str, provider: OAuthProvider) -> OAuthAuthorization:
        """Build the consent URL; the signed state binds the callback to this company."""
        state = self._state_manager().create_signed_state(provider, company_id)
        url = self._driver(provider).build_authorization_url(state)
        return OAuthAuthorization(provider=provider, authorization_url=url, state=state)

    async def complete_oauth(
        self, provider: OAuthProvider, code: str, state: str
    ) -> EmailAccountResult:
        """Exchange the code and store the mailbox as an active account.

        Raises:
            ValidationException: State invalid or expired.
            AuthError: Exchange or identity lookup failed, or no refresh token was granted.
            ConfigurationError: OAuth client credentials not configured.
        """
        verified = self._state_manager().verify_and_extract(state, provider)
        driver = self._driver(provider)
        tokens = await driver.exchange_code_for_tokens(code)
        if not tokens.refresh_token:
            raise AuthError(
                f"{driver.provider_name} did not grant offline access; reconnect and approve access",
                provider=provider.value,
            )
        user = await driver.get_user_info(tokens.access_token)
        return await self._create_with_secret(
            EmailAccountCreate(
                company_id=verified.company_id,
                type=provider.account_type,
                from_address=user.email,
                from_name=user.name,
                display_name=user.name or user.email,
                status=EmailAccountStatus.ACTIVE,
                capabilities=OAUTH_CAPABILITIES.to_dict(),
            ),
            tokens.to_secret_fields(),
        )

    async def update_account(
        self,
        company_id: str,
        account_id: str,
        *,
        display_name: str | None = None,
        from_name: str | None = None,
        is_default: bool | None = None,
        status: EmailAccountStatus | None = None,
    ) -> EmailAccountResult:
        """Apply the given fields; making an account default unsets the others."""
        await self.get_account(company_id, account_id)
        fields: dict[str, Any] = {}
        if display_name is not None:
            fields["display_name"] = display_name
        if from_name is not None:
            fields["from_name"] = from_name
        if status is not None:
            if status is EmailAccountStatus.ACTIVE:
                fields["error_message"] = None
            fields["status"] = status
        if is_default is True:
            await self._repo.clear_defaults(company_id, except_id=account_id)
            fields["is_default"] = True
        elif is_default is False:
            fields["is_default"] = False
        return await self._repo.update_email_account(account_id, **fields)

    async def delete_account(self, company_id: str, account_id: str) -> None:
        """Delete the secret, then the account."""
        await self.get_account(company_id, account_id)
        await self._secrets.delete_by_account(account_id)
        await self._repo.delete_email_account(account_id)
        logger.info("Deleted email account %s for company %s", account_id, company_id)

    async def send_test_email(
        self, company_id: str, account_id: str, to: str
    ) -> EmailSendResult:
        """Send a short message through the account and stamp last_used_at.

        Delivery errors propagate unchanged.
        """
        account = await self.get_account(company_id, account_id)
        if self._factory is None:
            raise RuntimeError("EmailAccountService was built without a provider factory")
        provider = await self._factory.get_email_provider(account.id)
        result = await provider.send(
            EmailMessage(
                from_address=account.from_address,
                from_name=account.from_name,
                to=to,
                subject=TEST_EMAIL_SUBJECT,
                html=TEST_EMAIL_HTML,
                text=TEST_EMAIL_TEXT,
            )
        )
        await self._repo.update_email_account(account.id, last_used_at=utc_now())
        logger.info("Test email sent from account %s (%s)", account.id, result.provider_message_id)
        return result
