"""Email account, provider factory and OAuth dependencies (composition root)."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from talentmail.core.config import get_settings
from talentmail.domain.enums import OAuthProvider
from talentmail.infrastructure.external.email.encryption import CredentialEncryptor
from talentmail.infrastructure.external.email.factory import EmailProviderFactory
from talentmail.infrastructure.external.email.oauth_drivers import (
    OAuthDriver,
    OAuthDriverRegistry,
)
from talentmail.infrastructure.external.email.oauth_state import OAuthStateManager
from talentmail.infrastructure.persistence.database import (
    get_db,
    get_db_transactional,
    get_session_factory,
)
from talentmail.infrastructure.persistence.repositories import (
    EmailAccountRepository,
    EmailAccountSecretRepository,
    SqlCredentialStore,
)
from talentmail.infrastructure.services.email_account_service import (
    EmailAccountService,
)


@lru_cache
def get_credential_encryptor() -> CredentialEncryptor:
    """Credential encryptor for email account secrets (key derived once per process)."""
    return CredentialEncryptor()


def get_oauth_state_manager() -> OAuthStateManager:
    """OAuth state signing/verification (composition root)."""
    return OAuthStateManager()


def get_email_http_client(request: Request) -> httpx.AsyncClient | None:
    """Shared HTTP client created in lifespan (None outside the app lifespan)."""
    return getattr(request.app.state, "email_http_client", None)


async def get_email_account_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EmailAccountRepository:
    """Email account repository for read operations (list, get by id)."""
    return EmailAccountRepository(db)


async def get_email_account_repo_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> EmailAccountRepository:
    """Email account repository for create/update/delete (transactional)."""
    return EmailAccountRepository(db)


async def get_email_account_secret_repo_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> EmailAccountSecretRepository:
    """Secret repository sharing the request transaction."""
    return EmailAccountSecretRepository(db)


def get_email_provider_factory(
    email_account_repo: Annotated[
        EmailAccountRepository, Depends(get_email_account_repo_for_write)
    ],
    credential_encryptor: Annotated[
        CredentialEncryptor, Depends(get_credential_encryptor)
    ],
    http_client: Annotated[httpx.AsyncClient | None, Depends(get_email_http_client)],
) -> EmailProviderFactory:
    """Provider factory; token refreshes persist through their own transactions."""
    return EmailProviderFactory(
        accounts=email_account_repo,
        credentials=SqlCredentialStore(get_session_factory()),
        encryptor=credential_encryptor,
        settings=get_settings(),
        http_client=http_client,
    )


def get_email_account_service(
    email_account_repo: Annotated[
        EmailAccountRepository, Depends(get_email_account_repo_for_write)
    ],
    secret_repo: Annotated[
        EmailAccountSecretRepository, Depends(get_email_account_secret_repo_for_write)
    ],
    credential_encryptor: Annotated[
        CredentialEncryptor, Depends(get_credential_encryptor)
    ],
    provider_factory: Annotated[
        EmailProviderFactory, Depends(get_email_provider_factory)
    ],
    state_manager: Annotated[OAuthStateManager, Depends(get_oauth_state_manager)],
    http_client: Annotated[httpx.AsyncClient | None, Depends(get_email_http_client)],
) -> EmailAccountService:
    """Email account service (composition root)."""
    settings = get_settings()

    def driver_lookup(provider: OAuthProvider) -> OAuthDriver:
        return OAuthDriverRegistry.from_settings(provider, settings, http_client=http_client)

    return EmailAccountService(
        email_account_repo=email_account_repo,
        secret_repo=secret_repo,
        credential_encryptor=credential_encryptor,
        provider_factory=provider_factory,
        state_manager=state_manager,
        driver_lookup=driver_lookup,
        smtp_timeout=settings.smtp_timeout_seconds,
    )
