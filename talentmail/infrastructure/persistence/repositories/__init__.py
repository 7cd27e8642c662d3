"""Persistence repositories. Re-exports for dependency injection."""

from talentmail.infrastructure.persistence.repositories.base import BaseRepository
from talentmail.infrastructure.persistence.repositories.email_account_repo import (
    EmailAccountRepository,
)
from talentmail.infrastructure.persistence.repositories.email_account_secret_repo import (
    EmailAccountSecretRepository,
    SqlCredentialStore,
)

__all__ = [
    "BaseRepository",
    "EmailAccountRepository",
    "EmailAccountSecretRepository",
    "SqlCredentialStore",
]
