"""SMTP provider: direct submission with aiosmtplib."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from email.utils import make_msgid
from typing import Any, Mapping

import aiosmtplib

from talentmail.domain.enums import EmailAccountType
from talentmail.infrastructure.exceptions import (
    AuthError,
    ConfigurationError,
    EmailDeliveryException,
    PermanentProviderError,
    TransientProviderError,
)
from talentmail.infrastructure.external.email.payloads import build_mime_message
from talentmail.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailSendResult,
    ProviderCapabilities,
)
from talentmail.shared.telemetry.logging import get_logger
from talentmail.shared.utils.datetime import utc_now
from talentmail.shared.utils.generators import synthesize_message_id

logger = get_logger(__name__)

PROVIDER_NAME = "smtp"
IMPLICIT_TLS_PORT = 465
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class SmtpConfig:
    """Decrypted SMTP secret."""

    host: str
    port: int
    username: str
    password: str
    use_tls: bool = True

    @classmethod
    def from_secret(cls, data: Mapping[str, Any]) -> SmtpConfig:
        """Build from a decrypted secret object ({host, port, username, password, useTls})."""
        host = data.get("host")
        port = data.get("port")
        if not host or not port:
            raise ConfigurationError(
                "SMTP credentials missing host or port", provider=PROVIDER_NAME
            )
        try:
            port_number = int(port)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"SMTP port is not a number: {port!r}", provider=PROVIDER_NAME
            ) from e
        use_tls = data.get("useTls")
        return cls(
            host=str(host),
            port=port_number,
            username=str(data.get("username") or ""),
            password=str(data.get("password") or ""),
            use_tls=True if use_tls is None else bool(use_tls),
        )

    def to_secret(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "password": self.password,
            "useTls": self.use_tls,
        }

    @property
    def implicit_tls(self) -> bool:
        """TLS from the first byte (port 465); otherwise use_tls means STARTTLS."""
        return self.use_tls and self.port == IMPLICIT_TLS_PORT

    @property
    def start_tls(self) -> bool:
        return self.use_tls and not self.implicit_tls

    def __repr__(self) -> str:
        return f"SmtpConfig(host={self.host!r}, port={self.port}, username={self.username!r}, use_tls={self.use_tls})"


def _classify_smtp_error(exc: Exception) -> EmailDeliveryException:
    """Map aiosmtplib/network exceptions onto the delivery taxonomy."""
    if isinstance(exc, aiosmtplib.SMTPAuthenticationError):
        return AuthError(
            "SMTP authentication failed",
            provider=PROVIDER_NAME,
            provider_error=exc.message,
            status_code=exc.code,
        )
    if isinstance(exc, aiosmtplib.SMTPRecipientsRefused):
        refused = exc.recipients[0] if exc.recipients else None
        code = refused.code if refused is not None else None
        text = "; ".join(f"{r.recipient}: {r.code} {r.message}" for r in exc.recipients)
        return _by_reply_code(code, "SMTP server refused the recipient", text)
    if isinstance(exc, aiosmtplib.SMTPResponseException):
        return _by_reply_code(exc.code, "SMTP server rejected the message", exc.message)
    if isinstance(exc, aiosmtplib.SMTPNotSupported):
        return ConfigurationError(
            "SMTP server does not support the configured TLS mode",
            provider=PROVIDER_NAME,
            provider_error=str(exc),
        )
    return TransientProviderError(
        f"SMTP send failed: {type(exc).__name__}",
        provider=PROVIDER_NAME,
        provider_error=str(exc),
    )


def _by_reply_code(code: int | None, message: str, text: str) -> EmailDeliveryException:
    if code is not None and 500 <= code < 600:
        return PermanentProviderError(
            message, provider=PROVIDER_NAME, provider_error=text, status_code=code
        )
    return TransientProviderError(
        message, provider=PROVIDER_NAME, provider_error=text, status_code=code
    )


class SMTPProvider:
    """Sends through the company's own SMTP server."""

    def __init__(
        self,
        config: SmtpConfig,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._timeout = timeout

    @property
    def account_type(self) -> EmailAccountType:
        return EmailAccountType.SMTP

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities()

    def _connection_kwargs(self) -> dict[str, Any]:
        return {
            "hostname": self._config.host,
            "port": self._config.port,
            "use_tls": self._config.implicit_tls,
            "start_tls": self._config.start_tls,
            "timeout": self._timeout,
        }

    async def send(self, message: EmailMessage) -> EmailSendResult:
        mime = build_mime_message(message)
        if "Message-ID" not in mime:
            domain = message.from_address.rpartition("@")[2] or None
            mime["Message-ID"] = make_msgid(domain=domain)
        try:
            await aiosmtplib.send(
                mime,
                username=self._config.username or None,
                password=self._config.password or None,
                **self._connection_kwargs(),
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            error = _classify_smtp_error(e)
            logger.warning(
                "SMTP send via %s:%s failed: %s",
                self._config.host,
                self._config.port,
                error.error_code,
            )
            raise error from e
        message_id = mime["Message-ID"] or synthesize_message_id("smtp")
        logger.info("SMTP server %s accepted message %s", self._config.host, message_id)
        return EmailSendResult(provider_message_id=message_id, accepted_at=utc_now())

    async def verify_connection(self) -> None:
        """Connect and log in without sending (used when an account is connected).

        Raises:
            EmailDeliveryException subclass describing the failure.
        """
        try:
            async with aiosmtplib.SMTP(**self._connection_kwargs()) as smtp:
                if self._config.username:
                    await smtp.login(self._config.username, self._config.password)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            raise _classify_smtp_error(e) from e
        logger.info("SMTP connection verified for %s:%s", self._config.host, self._config.port)
