"""Pydantic request/response schemas for the API."""

from talentmail.schemas.email_account import (
    EmailAccountResponse,
    EmailAccountUpdate,
    EmailSendResultResponse,
    EspAccountCreateRequest,
    OAuthAuthorizeResponse,
    SendTestEmailRequest,
    SmtpConnectRequest,
)
from talentmail.schemas.health import HealthResponse

__all__ = [
    "EmailAccountResponse",
    "EmailAccountUpdate",
    "EmailSendResultResponse",
    "EspAccountCreateRequest",
    "HealthResponse",
    "OAuthAuthorizeResponse",
    "SendTestEmailRequest",
    "SmtpConnectRequest",
]
