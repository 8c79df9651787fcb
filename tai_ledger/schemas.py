from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tai_ledger.core.constants import MAX_AMOUNT
from tai_ledger.domain import Currency, Role, StakingStatus, TransactionStatus, TransactionType, WithdrawalStatus


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---- accounts ----
class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=128)
    referral_code: Optional[str] = Field(default=None, max_length=32)


class AccountOut(_Out):
    id: int
    name: str
    email: str
    role: Role
    tai_id: str
    referral_code: str
    tai_balance: Decimal
    usdt_balance: Decimal
    referred_by: Optional[int] = None
    mining_active: bool
    mining_started_at: Optional[datetime] = None
    email_verified: bool
    created_at: datetime


class BalanceOut(BaseModel):
    tai_id: str
    tai_balance: Decimal
    usdt_balance: Decimal


# ---- wallet ----
class ConvertIn(BaseModel):
    amount: Decimal = Field(..., gt=0, lt=MAX_AMOUNT, decimal_places=18)
    from_currency: Currency
    to_currency: Currency


class ConvertOut(BaseModel):
    amount: Decimal
    from_currency: Currency
    to_currency: Currency
    converted: Decimal
    tai_balance: Decimal
    usdt_balance: Decimal


class TransferIn(BaseModel):
    recipient_tai_id: str = Field(..., min_length=1, max_length=32)
    amount: Decimal = Field(..., gt=0, lt=MAX_AMOUNT, decimal_places=18)


class TransferOut(_Out):
    amount: Decimal
    recipient_name: str
    recipient_tai_id: str


class WithdrawIn(BaseModel):
    amount: Decimal = Field(..., gt=0, lt=MAX_AMOUNT, decimal_places=18)
    currency: Currency
    address: str = Field(..., min_length=1, max_length=256)


class WithdrawalOut(_Out):
    id: int
    account_id: int
    amount: Decimal
    currency: Currency
    address: str
    status: WithdrawalStatus
    created_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[int] = None
    transaction_id: Optional[int] = None


class StakeIn(BaseModel):
    amount: Decimal = Field(..., gt=0, lt=MAX_AMOUNT, decimal_places=18)


class StakingOut(_Out):
    id: int
    account_id: int
    amount: Decimal
    started_at: datetime
    end_at: datetime
    status: StakingStatus
    last_reward_at: Optional[datetime] = None
    expected_return: Decimal = Decimal("0")


# ---- mining ----
class MiningOut(BaseModel):
    reward: Decimal
    elapsed_minutes: int
    tai_balance: Decimal


class MiningStatusOut(_Out):
    active: bool
    started_at: Optional[datetime] = None
    elapsed_minutes: int
    accrued: Decimal
    claimable: Decimal
    minutes_to_next_claim: Optional[int] = None


# ---- history ----
class TransactionOut(_Out):
    id: int
    account_id: int
    type: TransactionType
    amount: Decimal
    currency: Currency
    status: TransactionStatus
    description: str
    counterparty_id: Optional[int] = None
    created_at: datetime


class ReferralOut(_Out):
    name: str
    tai_id: str
    mining_active: bool
    created_at: datetime


class ReferralSummaryOut(_Out):
    referral_code: str
    referrals: list[ReferralOut]
    total: int
    mining: int
    earnings: Decimal


# ---- admin ----
class ProcessIn(BaseModel):
    decision: WithdrawalStatus


class FundIn(BaseModel):
    account_id: int = Field(..., ge=1)
    tai_amount: Decimal = Field(default=Decimal("0"), ge=0, lt=MAX_AMOUNT, decimal_places=18)
    usdt_amount: Decimal = Field(default=Decimal("0"), ge=0, lt=MAX_AMOUNT, decimal_places=18)


class StatsOut(_Out):
    total_accounts: int
    total_tai: Decimal
    total_usdt: Decimal
    pending_withdrawals: int
    active_stakings: int


class SettledOut(BaseModel):
    staking_id: int
    account_id: int
    reward: Decimal
