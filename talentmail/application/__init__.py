"""Application layer: DTOs and ports.

Depends only on domain definitions (DIP). Infrastructure implements the
interfaces (repositories, credential store).
"""

from talentmail.application.dtos import EmailAccountCreate, EmailAccountResult
from talentmail.application.interfaces import (
    ICredentialStore,
    IEmailAccountReader,
    IEmailAccountRepository,
    IEmailAccountSecretRepository,
)

__all__ = [
    "EmailAccountCreate",
    "EmailAccountResult",
    "ICredentialStore",
    "IEmailAccountReader",
    "IEmailAccountRepository",
    "IEmailAccountSecretRepository",
]
