"""Domain layer: enums and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from talentmail.domain.enums import EmailAccountStatus, EmailAccountType, OAuthProvider
from talentmail.domain.exceptions import (
    CredentialException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    TalentMailException,
    ValidationException,
)

__all__ = [
    # Enums
    "EmailAccountStatus",
    "EmailAccountType",
    "OAuthProvider",
    # Exceptions
    "CredentialException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "TalentMailException",
    "ValidationException",
]
