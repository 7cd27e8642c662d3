"""DTOs for email account use cases (no dependency on ORM)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from talentmail.domain.enums import EmailAccountStatus, EmailAccountType


@dataclass(frozen=True)
class EmailAccountResult:
    """Email account read-model (secret material is never part of it)."""

    id: str
    company_id: str
    type: EmailAccountType
    from_address: str
    status: EmailAccountStatus
    is_default: bool
    from_name: str | None = None
    display_name: str | None = None
    capabilities: dict[str, Any] = field(default_factory=dict)
    last_used_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is EmailAccountStatus.ACTIVE


@dataclass(frozen=True)
class EmailAccountCreate:
    """Fields for a new email account row."""

    company_id: str
    type: EmailAccountType
    from_address: str
    from_name: str | None = None
    display_name: str | None = None
    status: EmailAccountStatus = EmailAccountStatus.ACTIVE
    is_default: bool = False
    capabilities: dict[str, Any] = field(default_factory=dict)
