"""EmailAccount ORM models: sending identities and their encrypted secrets."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from talentmail.domain.enums import EmailAccountStatus, EmailAccountType
from talentmail.infrastructure.persistence.database import Base
from talentmail.infrastructure.persistence.models.mixins import (
    CompanyScopedModel,
    CuidMixin,
    TimestampMixin,
)


class EmailAccount(CompanyScopedModel, Base):
    """Configured sending identity for a company. Table: email_account."""

    __tablename__ = "email_account"
    __table_args__ = (
        Index("ix_email_account_company_status", "company_id", "status"),
        CheckConstraint(
            "type IN (" + ", ".join(f"'{v}'" for v in EmailAccountType.values()) + ")",
            name="ck_email_account_type",
        ),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{v}'" for v in EmailAccountStatus.values()) + ")",
            name="ck_email_account_status",
        ),
    )

    type: Mapped[str] = mapped_column(String(32), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    from_address: Mapped[str] = mapped_column(String(320), nullable=False)
    from_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EmailAccountStatus.PENDING.value
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    capabilities: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)


class EmailAccountSecret(CuidMixin, TimestampMixin, Base):
    """Encrypted credential blob, at most one per account. Table: email_account_secret."""

    __tablename__ = "email_account_secret"

    email_account_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("email_account.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    encrypted_data: Mapped[str] = mapped_column(Text, nullable=False)
    encryption_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
