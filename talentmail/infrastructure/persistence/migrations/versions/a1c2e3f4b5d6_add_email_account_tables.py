"""add_email_account_tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1c2e3f4b5d6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "email_account",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("from_address", sa.String(length=320), nullable=False),
        sa.Column("from_name", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.String(length=16),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("capabilities", sa.JSON(), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "type IN ('esp', 'gmail_oauth', 'microsoft_oauth', 'smtp')",
            name="ck_email_account_type",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'disabled', 'error')",
            name="ck_email_account_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_email_account_company_id"), "email_account", ["company_id"], unique=False
    )
    op.create_index(
        "ix_email_account_company_status",
        "email_account",
        ["company_id", "status"],
        unique=False,
    )

    op.create_table(
        "email_account_secret",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email_account_id", sa.String(), nullable=False),
        sa.Column("encrypted_data", sa.Text(), nullable=False),
        sa.Column("encryption_version", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["email_account_id"], ["email_account.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email_account_id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("email_account_secret")
    op.drop_index("ix_email_account_company_status", table_name="email_account")
    op.drop_index(op.f("ix_email_account_company_id"), table_name="email_account")
    op.drop_table("email_account")
