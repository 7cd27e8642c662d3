"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for DB sessions, repositories and services.
Routes depend only on these dependencies, not on infrastructure directly.
"""

from talentmail.api.v1.dependencies.company import get_company_id
from talentmail.api.v1.dependencies.email import (
    get_credential_encryptor,
    get_email_account_repo,
    get_email_account_repo_for_write,
    get_email_account_secret_repo_for_write,
    get_email_account_service,
    get_email_http_client,
    get_email_provider_factory,
    get_oauth_state_manager,
)

__all__ = [
    "get_company_id",
    "get_credential_encryptor",
    "get_email_account_repo",
    "get_email_account_repo_for_write",
    "get_email_account_secret_repo_for_write",
    "get_email_account_service",
    "get_email_http_client",
    "get_email_provider_factory",
    "get_oauth_state_manager",
]
