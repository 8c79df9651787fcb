from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from tai_ledger.database import Base


class Amount(TypeDecorator):
    """NUMERIC(38, 18) on real databases; exact decimal text on SQLite, which would round-trip through float."""

    impl = Numeric(38, 18)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(Numeric(38, 18))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = value if isinstance(value, Decimal) else Decimal(str(value))
        if dialect.name == "sqlite":
            return format(value, "f")
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value if isinstance(value, Decimal) else Decimal(str(value))


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, also on backends that drop tzinfo."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# SQLite only autoincrements INTEGER PRIMARY KEY columns
PK = BigInteger().with_variant(Integer, "sqlite")


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")

    tai_balance: Mapped[Decimal] = mapped_column(Amount, nullable=False, default=Decimal("0"))
    usdt_balance: Mapped[Decimal] = mapped_column(Amount, nullable=False, default=Decimal("0"))

    tai_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    referral_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    referred_by: Mapped[int | None] = mapped_column(
        PK, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    mining_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mining_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("tai_balance >= 0", name="ck_accounts_tai_balance_nonneg"),
        CheckConstraint("usdt_balance >= 0", name="ck_accounts_usdt_balance_nonneg"),
    )


class TransactionRow(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(PK, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="completed")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    counterparty_id: Mapped[int | None] = mapped_column(
        PK, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_account_created", "account_id", "created_at"),
        Index("ix_transactions_counterparty_created", "counterparty_id", "created_at"),
    )


class WithdrawalRow(Base):
    __tablename__ = "withdrawals"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(PK, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    address: Mapped[str] = mapped_column(String(256), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    processed_by: Mapped[int | None] = mapped_column(
        PK, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=True
    )
    transaction_id: Mapped[int | None] = mapped_column(
        PK, ForeignKey("transactions.id", ondelete="RESTRICT"), nullable=True
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawals_amount_positive"),
        Index("ix_withdrawals_account_created", "account_id", "created_at"),
    )


class StakingRow(Base):
    __tablename__ = "stakings"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(PK, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", index=True)
    last_reward_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_stakings_amount_positive"),
        Index("ix_stakings_account_status", "account_id", "status"),
    )
