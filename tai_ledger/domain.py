"""Domain objects for the ledger: plain dataclasses, no persistence concerns."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from tai_ledger.core.constants import ZERO
from tai_ledger.core.errors import InvalidOperation


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _ClosedEnum(str, enum.Enum):
    @classmethod
    def parse(cls, value: "str | _ClosedEnum"):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            raise InvalidOperation(f"Unsupported {cls.__name__.lower()}: {value}") from None


class Currency(_ClosedEnum):
    TAI = "TAI"
    USDT = "USDT"


class Role(_ClosedEnum):
    USER = "user"
    ADMIN = "admin"


class TransactionType(_ClosedEnum):
    MINING_REWARD = "mining_reward"
    REFERRAL_BONUS = "referral_bonus"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_SENT = "transfer_sent"
    TRANSFER_RECEIVED = "transfer_received"
    CONVERSION = "conversion"
    STAKING = "staking"
    STAKING_REWARD = "staking_reward"


class TransactionStatus(_ClosedEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class WithdrawalStatus(_ClosedEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StakingStatus(_ClosedEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


@dataclass
class Account:
    name: str
    email: str
    password_hash: str
    tai_id: str
    referral_code: str
    role: Role = Role.USER
    tai_balance: Decimal = ZERO
    usdt_balance: Decimal = ZERO
    referred_by: int | None = None
    mining_active: bool = False
    mining_started_at: datetime | None = None
    email_verified: bool = False
    created_at: datetime = field(default_factory=utcnow)
    version: int = 1
    id: int | None = None


@dataclass(frozen=True)
class TransactionRecord:
    account_id: int
    type: TransactionType
    amount: Decimal
    currency: Currency
    status: TransactionStatus = TransactionStatus.COMPLETED
    description: str = ""
    counterparty_id: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None


@dataclass
class Withdrawal:
    account_id: int
    amount: Decimal
    currency: Currency
    address: str
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None
    processed_by: int | None = None
    transaction_id: int | None = None
    id: int | None = None


@dataclass
class StakingPosition:
    account_id: int
    amount: Decimal
    started_at: datetime
    end_at: datetime
    status: StakingStatus = StakingStatus.ACTIVE
    last_reward_at: datetime | None = None
    id: int | None = None

    def is_matured(self, now: datetime) -> bool:
        return now >= self.end_at
