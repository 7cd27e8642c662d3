"""Application interfaces (ports): repository protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from talentmail.infrastructure or talentmail.api.
"""

from talentmail.application.interfaces.repositories import (
    ICredentialStore,
    IEmailAccountReader,
    IEmailAccountRepository,
    IEmailAccountSecretRepository,
)

__all__ = [
    "ICredentialStore",
    "IEmailAccountReader",
    "IEmailAccountRepository",
    "IEmailAccountSecretRepository",
]
