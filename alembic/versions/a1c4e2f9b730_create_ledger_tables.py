"""create_ledger_tables

Revision ID: a1c4e2f9b730
Revises:
Create Date: 2026-10-19 10:12:41.220913

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c4e2f9b730"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default=sa.text("'user'")),
        sa.Column("tai_balance", sa.Numeric(38, 18), nullable=False, server_default=sa.text("0")),
        sa.Column("usdt_balance", sa.Numeric(38, 18), nullable=False, server_default=sa.text("0")),
        sa.Column("tai_id", sa.String(length=32), nullable=False),
        sa.Column("referral_code", sa.String(length=32), nullable=False),
        sa.Column(
            "referred_by",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("mining_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("mining_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("timezone('utc', now())"),
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
        sa.UniqueConstraint("tai_id", name="uq_accounts_tai_id"),
        sa.UniqueConstraint("referral_code", name="uq_accounts_referral_code"),
        sa.CheckConstraint("tai_balance >= 0", name="ck_accounts_tai_balance_nonneg"),
        sa.CheckConstraint("usdt_balance >= 0", name="ck_accounts_usdt_balance_nonneg"),
    )
    op.create_index("ix_accounts_referred_by", "accounts", ["referred_by"], unique=False)

    # --- transactions (append-only log) ---
    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(38, 18), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'completed'")),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "counterparty_id",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("timezone('utc', now())"),
        ),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_account_created", "transactions", ["account_id", "created_at"], unique=False)
    op.create_index(
        "ix_transactions_counterparty_created", "transactions", ["counterparty_id", "created_at"], unique=False
    )

    # --- withdrawals ---
    op.create_table(
        "withdrawals",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(38, 18), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("address", sa.String(length=256), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("timezone('utc', now())"),
        ),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "processed_by",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "transaction_id",
            sa.BigInteger(),
            sa.ForeignKey("transactions.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.CheckConstraint("amount > 0", name="ck_withdrawals_amount_positive"),
    )
    op.create_index("ix_withdrawals_status", "withdrawals", ["status"], unique=False)
    op.create_index("ix_withdrawals_account_created", "withdrawals", ["account_id", "created_at"], unique=False)

    # --- stakings ---
    op.create_table(
        "stakings",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(38, 18), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'active'")),
        sa.Column("last_reward_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_stakings_amount_positive"),
    )
    op.create_index("ix_stakings_end_at", "stakings", ["end_at"], unique=False)
    op.create_index("ix_stakings_status", "stakings", ["status"], unique=False)
    op.create_index("ix_stakings_account_status", "stakings", ["account_id", "status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_stakings_account_status", table_name="stakings")
    op.drop_index("ix_stakings_status", table_name="stakings")
    op.drop_index("ix_stakings_end_at", table_name="stakings")
    op.drop_table("stakings")

    op.drop_index("ix_withdrawals_account_created", table_name="withdrawals")
    op.drop_index("ix_withdrawals_status", table_name="withdrawals")
    op.drop_table("withdrawals")

    op.drop_index("ix_transactions_counterparty_created", table_name="transactions")
    op.drop_index("ix_transactions_account_created", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_accounts_referred_by", table_name="accounts")
    op.drop_table("accounts")
