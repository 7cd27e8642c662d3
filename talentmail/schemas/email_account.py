"""Email account API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from talentmail.domain.enums import EmailAccountStatus, EmailAccountType, OAuthProvider


class EspAccountCreateRequest(BaseModel):
    """Request body for creating an ESP (hosted sending API) account."""

    display_name: str = Field(..., min_length=1, max_length=255)
    from_address: EmailStr
    from_name: str | None = Field(None, max_length=255)
    is_default: bool = False


class SmtpConnectRequest(BaseModel):
    """Request body for connecting an SMTP server (login verified before saving)."""

    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(..., ge=1, le=65535)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    from_address: EmailStr
    from_name: str | None = Field(None, max_length=255)
    use_tls: bool = True
    is_default: bool = False


class EmailAccountUpdate(BaseModel):
    """Request body for PATCH (partial update)."""

    display_name: str | None = Field(None, min_length=1, max_length=255)
    from_name: str | None = Field(None, max_length=255)
    is_default: bool | None = None
    status: EmailAccountStatus | None = None


class SendTestEmailRequest(BaseModel):
    """Request body for POST /{account_id}/test."""

    to: EmailStr


class EmailAccountResponse(BaseModel):
    """Response model for list and detail email account endpoints (no secret material)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    type: EmailAccountType
    display_name: str | None = None
    from_address: str
    from_name: str | None = None
    status: EmailAccountStatus
    is_default: bool
    capabilities: dict[str, Any] = Field(default_factory=dict)
    last_used_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OAuthAuthorizeResponse(BaseModel):
    """Response for GET /oauth/{provider}/authorize."""

    model_config = ConfigDict(from_attributes=True)

    provider: OAuthProvider
    authorization_url: str
    state: str


class EmailSendResultResponse(BaseModel):
    """Response for a test send (acceptance by the transport, not delivery)."""

    model_config = ConfigDict(from_attributes=True)

    provider_message_id: str
    accepted_at: datetime
