from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from tai_ledger.core.constants import ZERO
from tai_ledger.core.ledger import get_account
from tai_ledger.domain import (
    Account,
    StakingStatus,
    TransactionType,
    WithdrawalStatus,
)
from tai_ledger.storage.base import LedgerSession


@dataclass(frozen=True)
class ReferralSummary:
    referral_code: str
    referrals: list[Account]
    total: int
    mining: int
    earnings: Decimal


@dataclass(frozen=True)
class SystemStats:
    total_accounts: int
    total_tai: Decimal
    total_usdt: Decimal
    pending_withdrawals: int
    active_stakings: int


def referral_summary(db: LedgerSession, account_id: int) -> ReferralSummary:
    acc = get_account(db, account_id)
    referrals = db.list_accounts(referred_by=acc.id)
    earnings = sum(
        (
            tx.amount
            for tx in db.list_transactions(acc.id)
            if tx.account_id == acc.id and tx.type is TransactionType.REFERRAL_BONUS
        ),
        ZERO,
    )
    return ReferralSummary(
        referral_code=acc.referral_code,
        referrals=referrals,
        total=len(referrals),
        mining=sum(1 for a in referrals if a.mining_active),
        earnings=earnings,
    )


def system_stats(db: LedgerSession) -> SystemStats:
    accounts = db.list_accounts()
    return SystemStats(
        total_accounts=len(accounts),
        total_tai=sum((a.tai_balance for a in accounts), ZERO),
        total_usdt=sum((a.usdt_balance for a in accounts), ZERO),
        pending_withdrawals=len(db.list_withdrawals(status=WithdrawalStatus.PENDING)),
        active_stakings=len(db.list_stakings(status=StakingStatus.ACTIVE)),
    )
