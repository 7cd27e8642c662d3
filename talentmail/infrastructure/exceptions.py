"""Infrastructure exceptions for outbound email delivery.

Every failure of a provider send, token refresh or provider resolution
surfaces as one of the EmailDeliveryException subclasses below. They extend
TalentMailException so presentation can map them to HTTP responses
consistently. The raw provider error text travels in
details["provider_error"] for diagnostics.
"""

from typing import Any

from talentmail.domain.exceptions import TalentMailException


class EmailDeliveryException(TalentMailException):
    """Base exception for email provider resolution and send failures."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str,
        *,
        provider: str | None = None,
        provider_error: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged: dict[str, Any] = dict(details or {})
        if provider:
            merged["provider"] = provider
        if provider_error is not None:
            merged["provider_error"] = provider_error
        if status_code is not None:
            merged["status_code"] = status_code
        self.provider = provider
        self.provider_error = provider_error
        self.status_code = status_code
        super().__init__(message, error_code, merged)


class ConfigurationError(EmailDeliveryException):
    """Required configuration (OAuth client credentials, API key, secret material) is absent or unusable."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        provider_error: str | None = None,
    ) -> None:
        super().__init__(
            message,
            "CONFIGURATION_ERROR",
            provider=provider,
            provider_error=provider_error,
        )


class AccountStateError(EmailDeliveryException):
    """Email account missing, not active, or no usable account for a company."""

    def __init__(
        self,
        message: str,
        *,
        account_id: str | None = None,
        company_id: str | None = None,
        status: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if account_id:
            details["account_id"] = account_id
        if company_id:
            details["company_id"] = company_id
        if status:
            details["status"] = status
        super().__init__(message, "ACCOUNT_STATE_ERROR", details=details)


class AuthError(EmailDeliveryException):
    """Token refresh failed or the transport rejected our credentials. Not retried."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        provider_error: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            "AUTH_ERROR",
            provider=provider,
            provider_error=provider_error,
            status_code=status_code,
        )


class TransientProviderError(EmailDeliveryException):
    """Server-side, rate-limit or network failure; safe to retry with backoff."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        provider_error: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            "TRANSIENT_PROVIDER_ERROR",
            provider=provider,
            provider_error=provider_error,
            status_code=status_code,
        )


class PermanentProviderError(EmailDeliveryException):
    """Transport rejected the payload itself; retrying the same message is pointless."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        provider_error: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            "PERMANENT_PROVIDER_ERROR",
            provider=provider,
            provider_error=provider_error,
            status_code=status_code,
        )


def error_for_status(
    status_code: int,
    message: str,
    *,
    provider: str,
    provider_error: str | None = None,
) -> EmailDeliveryException:
    """Classify a non-2xx transport status into the delivery taxonomy.

    401/403 -> AuthError; 429 and 5xx -> TransientProviderError;
    any other status -> PermanentProviderError.
    """
    if status_code in (401, 403):
        return AuthError(
            message,
            provider=provider,
            provider_error=provider_error,
            status_code=status_code,
        )
    if status_code == 429 or status_code >= 500:
        return TransientProviderError(
            message,
            provider=provider,
            provider_error=provider_error,
            status_code=status_code,
        )
    return PermanentProviderError(
        message,
        provider=provider,
        provider_error=provider_error,
        status_code=status_code,
    )
