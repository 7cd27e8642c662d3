"""Email provider protocols and data structures (provider-agnostic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping, Protocol

from talentmail.domain.enums import EmailAccountType
from talentmail.shared.utils.datetime import (
    from_timestamp_ms_utc,
    to_timestamp_ms,
    utc_now,
)


@dataclass(frozen=True)
class EmailMessage:
    """Outgoing message (provider-agnostic, immutable per send).

    Custom headers must not repeat From, To, Subject or Content-Type;
    callers own that constraint.
    """

    from_address: str
    to: str
    subject: str
    html: str
    from_name: str | None = None
    text: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    reply_to: str | None = None


@dataclass(frozen=True)
class EmailSendResult:
    """Acceptance receipt from a transport (not a delivery confirmation)."""

    provider_message_id: str
    accepted_at: datetime


@dataclass(frozen=True)
class ProviderCapabilities:
    """Capability flags callers use for auxiliary behavior (not used by send)."""

    supports_inbound: bool = False
    supports_webhooks: bool = False
    supports_threading: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "supportsInbound": self.supports_inbound,
            "supportsWebhooks": self.supports_webhooks,
            "supportsThreading": self.supports_threading,
        }


@dataclass
class TokenSet:
    """OAuth token material held by a mailbox provider.

    access_token and expires_at are always replaced together; refresh_token
    only when a refresh response supplies a new one (see merged_with).
    """

    access_token: str
    refresh_token: str | None
    expires_at: datetime

    @classmethod
    def from_secret(cls, data: Mapping[str, Any]) -> TokenSet:
        """Build from a decrypted secret object ({accessToken, refreshToken, expiresAt ms})."""
        raw_expires = data.get("expiresAt")
        if isinstance(raw_expires, (int, float)):
            expires_at = from_timestamp_ms_utc(raw_expires)
        else:
            # Unknown expiry: treat as expired so the first send refreshes.
            expires_at = from_timestamp_ms_utc(0)
        return cls(
            access_token=str(data.get("accessToken") or ""),
            refresh_token=data.get("refreshToken") or None,
            expires_at=expires_at,
        )

    @classmethod
    def from_expires_in(
        cls,
        access_token: str,
        refresh_token: str | None,
        expires_in: int | float,
    ) -> TokenSet:
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=utc_now() + timedelta(seconds=float(expires_in)),
        )

    def merged_with(self, refreshed: TokenSet) -> TokenSet:
        """Return refreshed token material, keeping our refresh token if none was issued."""
        return TokenSet(
            access_token=refreshed.access_token,
            refresh_token=refreshed.refresh_token or self.refresh_token,
            expires_at=refreshed.expires_at,
        )

    def to_secret_fields(self) -> dict[str, Any]:
        """Fields merged into the stored secret object after a refresh."""
        fields: dict[str, Any] = {
            "accessToken": self.access_token,
            "expiresAt": to_timestamp_ms(self.expires_at),
        }
        if self.refresh_token:
            fields["refreshToken"] = self.refresh_token
        return fields

    def __repr__(self) -> str:
        return f"TokenSet(expires_at={self.expires_at.isoformat()!r}, has_refresh_token={bool(self.refresh_token)})"


class IEmailProvider(Protocol):
    """Uniform send contract implemented by every transport."""

    @property
    def account_type(self) -> EmailAccountType:
        """Account type this provider serves."""
        ...

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Declared capability flags."""
        ...

    async def send(self, message: EmailMessage) -> EmailSendResult:
        """Hand the message to the transport.

        Raises:
            EmailDeliveryException subclass on any failure.
        """
        ...


class ITokenStore(Protocol):
    """Persistence port for refreshed OAuth tokens of one email account."""

    async def persist(self, account_id: str, tokens: TokenSet) -> None:
        """Merge tokens into the stored secret (atomic read-modify-write)."""
        ...

    async def load(self, account_id: str) -> TokenSet | None:
        """Return the currently stored token set, or None if absent."""
        ...


class ICredentialEncryptor(Protocol):
    """Encryption capability injected into the factory and account service."""

    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, ciphertext: str) -> str: ...

    def encrypt_json(self, data: dict[str, Any]) -> str: ...

    def decrypt_json(self, ciphertext: str) -> dict[str, Any]:
        """Raises CredentialException when the blob is unreadable or not a JSON object."""
        ...
