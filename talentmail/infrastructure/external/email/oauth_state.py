"""Signed OAuth state for the mailbox connect flow (CSRF protection).

The state carries which company started the flow, so the callback can
create the account without a server-side session.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from talentmail.core.config import Settings, get_settings
from talentmail.domain.enums import OAuthProvider
from talentmail.domain.exceptions import ValidationException
from talentmail.shared.utils.datetime import to_timestamp_ms, utc_now

# Domain-separation context for OAuth state signing key derivation.
_OAUTH_STATE_KEY_INFO = b"email-oauth-state-signing"
DEFAULT_MAX_AGE_SECONDS = 600


@dataclass(frozen=True)
class OAuthState:
    """Verified contents of a state parameter."""

    provider: OAuthProvider
    company_id: str
    issued_at_ms: int
    nonce: str


class OAuthStateManager:
    """Signed OAuth state (provider:company_id:issued_ms:nonce:signature)."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    ) -> None:
        self.settings = settings or get_settings()
        self._signing_key = self._derive_signing_key()
        self._max_age_ms = max_age_seconds * 1000

    def _derive_signing_key(self) -> bytes:
        """Derive a purpose-specific HMAC key from the master secret (domain separation)."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=_OAUTH_STATE_KEY_INFO,
        )
        return hkdf.derive(self.settings.secret_key.get_secret_value().encode())

    def _sign(self, payload: str) -> str:
        return hmac.new(self._signing_key, payload.encode(), hashlib.sha256).hexdigest()

    def create_signed_state(self, provider: OAuthProvider, company_id: str) -> str:
        if not company_id or ":" in company_id:
            raise ValidationException("Invalid company id", field="company_id")
        payload = ":".join(
            (
                provider.value,
                company_id,
                str(to_timestamp_ms(utc_now())),
                secrets.token_urlsafe(16),
            )
        )
        return f"{payload}:{self._sign(payload)}"

    def verify_and_extract(self, signed_state: str, provider: OAuthProvider) -> OAuthState:
        """Verify signature, provider and age; return the state contents.

        Raises:
            ValidationException: Invalid format, signature, provider, or expired state.
        """
        parts = signed_state.rsplit(":", 1)
        if len(parts) != 2:
            raise ValidationException("Invalid state format", field="state")
        payload, signature = parts
        if not hmac.compare_digest(self._sign(payload), signature):
            raise ValidationException(
                "Invalid state signature - possible CSRF attack", field="state"
            )
        fields = payload.split(":")
        if len(fields) != 4:
            raise ValidationException("Invalid state format", field="state")
        provider_value, company_id, issued_raw, nonce = fields
        if provider_value != provider.value:
            raise ValidationException("State was issued for another provider", field="state")
        try:
            issued_at_ms = int(issued_raw)
        except ValueError as e:
            raise ValidationException("Invalid state format", field="state") from e
        if to_timestamp_ms(utc_now()) - issued_at_ms > self._max_age_ms:
            raise ValidationException("OAuth state expired; start again", field="state")
        return OAuthState(
            provider=provider,
            company_id=company_id,
            issued_at_ms=issued_at_ms,
            nonce=nonce,
        )
