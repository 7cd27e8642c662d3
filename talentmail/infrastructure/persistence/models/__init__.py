"""Persistence models: ORM entities and mixins."""

from talentmail.infrastructure.persistence.models.email_account import (
    EmailAccount,
    EmailAccountSecret,
)
from talentmail.infrastructure.persistence.models.mixins import (
    CompanyMixin,
    CompanyScopedModel,
    CuidMixin,
    TimestampMixin,
)

__all__ = [
    "EmailAccount",
    "EmailAccountSecret",
    "CompanyMixin",
    "CompanyScopedModel",
    "CuidMixin",
    "TimestampMixin",
]
