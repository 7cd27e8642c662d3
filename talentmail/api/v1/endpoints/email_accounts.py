"""Email accounts API: list, get, connect, update, delete and test (company-scoped).

Uses only injected get_email_account_service; delivery errors map to
HTTP statuses in core.exception_handlers.
"""

from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import RedirectResponse

from talentmail.api.v1.dependencies import get_company_id, get_email_account_service
from talentmail.core.config import get_settings
from talentmail.domain.enums import OAuthProvider
from talentmail.domain.exceptions import TalentMailException
from talentmail.infrastructure.services.email_account_service import EmailAccountService
from talentmail.schemas.email_account import (
    EmailAccountResponse,
    EmailAccountUpdate,
    EmailSendResultResponse,
    EspAccountCreateRequest,
    OAuthAuthorizeResponse,
    SendTestEmailRequest,
    SmtpConnectRequest,
)
from talentmail.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

CompanyId = Annotated[str, Depends(get_company_id)]
Service = Annotated[EmailAccountService, Depends(get_email_account_service)]


def _completion_redirect(**params: str) -> RedirectResponse:
    base = get_settings().oauth_completion_redirect_url
    separator = "&" if "?" in base else "?"
    return RedirectResponse(url=f"{base}{separator}{urlencode(params)}", status_code=302)


@router.get("", response_model=list[EmailAccountResponse])
async def list_email_accounts(company_id: CompanyId, service: Service):
    """List email accounts for the company (default first, then newest)."""
    accounts = await service.list_accounts(company_id)
    return [EmailAccountResponse.model_validate(a) for a in accounts]


@router.post("/esp", response_model=EmailAccountResponse, status_code=201)
async def create_esp_account(
    body: EspAccountCreateRequest,
    company_id: CompanyId,
    service: Service,
):
    """Create an account that sends through the hosted sending API."""
    account = await service.create_esp_account(
        company_id,
        display_name=body.display_name,
        from_address=str(body.from_address),
        from_name=body.from_name,
        is_default=body.is_default,
    )
    return EmailAccountResponse.model_validate(account)


@router.post("/smtp", response_model=EmailAccountResponse, status_code=201)
async def connect_smtp_account(
    body: SmtpConnectRequest,
    company_id: CompanyId,
    service: Service,
):
    """Verify SMTP login and store the account. 400 if the server rejects it."""
    account = await service.connect_smtp(
        company_id,
        host=body.host,
        port=body.port,
        username=body.username,
        password=body.password,
        from_address=str(body.from_address),
        from_name=body.from_name,
        use_tls=body.use_tls,
        is_default=body.is_default,
    )
    return EmailAccountResponse.model_validate(account)


@router.get("/oauth/{provider}/authorize", response_model=OAuthAuthorizeResponse)
async def authorize_oauth_account(
    provider: OAuthProvider,
    company_id: CompanyId,
    service: Service,
):
    """Return the consent URL for connecting a Gmail or Microsoft mailbox."""
    return OAuthAuthorizeResponse.model_validate(service.start_oauth(company_id, provider))


@router.get("/oauth/{provider}/callback", response_class=RedirectResponse)
async def oauth_callback(
    provider: OAuthProvider,
    service: Service,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
):
    """Provider redirect target. The signed state carries the company.

    Always redirects to the completion page with ?connected=<provider>
    or ?error=<code>.
    """
    if error or not code or not state:
        logger.warning("OAuth callback for %s without a code: %s", provider.value, error)
        return _completion_redirect(error="oauth_denied")
    try:
        account = await service.complete_oauth(provider, code, state)
    except TalentMailException as e:
        logger.warning("OAuth callback for %s failed: %s", provider.value, e.error_code)
        return _completion_redirect(error=e.error_code.lower())
    except Exception:
        logger.exception("OAuth callback for %s failed unexpectedly", provider.value)
        return _completion_redirect(error="callback_failed")
    logger.info("Connected %s mailbox %s", provider.value, account.id)
    return _completion_redirect(connected=provider.value)


@router.get("/{account_id}", response_model=EmailAccountResponse)
async def get_email_account(account_id: str, company_id: CompanyId, service: Service):
    """Get email account by id (company-scoped)."""
    account = await service.get_account(company_id, account_id)
    return EmailAccountResponse.model_validate(account)


@router.patch("/{account_id}", response_model=EmailAccountResponse)
async def update_email_account(
    account_id: str,
    body: EmailAccountUpdate,
    company_id: CompanyId,
    service: Service,
):
    """Partial update. Making an account default unsets the company's other defaults."""
    account = await service.update_account(
        company_id,
        account_id,
        display_name=body.display_name,
        from_name=body.from_name,
        is_default=body.is_default,
        status=body.status,
    )
    return EmailAccountResponse.model_validate(account)


@router.delete("/{account_id}", status_code=204)
async def delete_email_account(account_id: str, company_id: CompanyId, service: Service):
    """Delete the account and its stored credentials."""
    await service.delete_account(company_id, account_id)
    return Response(status_code=204)


@router.post("/{account_id}/test", response_model=EmailSendResultResponse)
async def send_test_email(
    account_id: str,
    body: SendTestEmailRequest,
    company_id: CompanyId,
    service: Service,
):
    """Send a test message through the account."""
    result = await service.send_test_email(company_id, account_id, str(body.to))
    return EmailSendResultResponse.model_validate(result)
