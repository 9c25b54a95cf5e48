"""Initial schema — group configs, members and transactions.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ── group_configs ─────────────────────────────────────────────────
    op.create_table(
        "group_configs",
        sa.Column("group_id", sa.Text, primary_key=True),
        sa.Column("categories", sa.JSON, nullable=False),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ── group_members ─────────────────────────────────────────────────
    op.create_table(
        "group_members",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("group_id", sa.Text, nullable=False),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("nickname", sa.Text, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])

    # ── transactions ──────────────────────────────────────────────────
    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("group_id", sa.Text, nullable=False),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("payer_name", sa.Text, nullable=False, server_default="unknown"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("item", sa.Text, nullable=False),
        sa.Column("parent_category", sa.Text, nullable=False),
        sa.Column("sub_category", sa.Text, nullable=False, server_default=""),
        sa.Column("kind", sa.Text, nullable=False),
        sa.Column("transaction_date", sa.DateTime, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("kind IN ('expense', 'income')", name="ck_transactions_kind"),
        sa.CheckConstraint("amount >= 0", name="ck_transactions_amount"),
    )
    op.create_index(
        "ix_transactions_group_date", "transactions", ["group_id", "transaction_date"]
    )
    op.create_index(
        "ix_transactions_group_created", "transactions", ["group_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_transactions_group_created", table_name="transactions")
    op.drop_index("ix_transactions_group_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_group_members_group_id", table_name="group_members")
    op.drop_table("group_members")
    op.drop_table("group_configs")
