from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_DOWN, Decimal

from tai_ledger.core import transactions
from tai_ledger.core.constants import CENT, MINING_RATE_PER_HOUR, MINUTES_PER_HOUR, ZERO
from tai_ledger.core.errors import InvalidOperation, NoRewardYet
from tai_ledger.core.ledger import apply_delta, get_account
from tai_ledger.domain import Account, Currency, TransactionType, utcnow
from tai_ledger.storage.base import LedgerSession

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MiningResult:
    reward: Decimal
    elapsed_minutes: int
    account: Account


@dataclass(frozen=True)
class MiningStatus:
    active: bool
    started_at: datetime | None
    elapsed_minutes: int
    accrued: Decimal
    claimable: Decimal
    minutes_to_next_claim: int | None


def elapsed_minutes(started_at: datetime | None, now: datetime) -> int:
    """Whole minutes since started_at; a clock that went backwards counts as zero."""
    if started_at is None:
        return 0
    return max(int((now - started_at).total_seconds() // 60), 0)


def stop_reward(minutes: int) -> Decimal:
    """floor(minutes / 60 * 0.25, 2 places)"""
    raw = Decimal(minutes) * MINING_RATE_PER_HOUR / Decimal(MINUTES_PER_HOUR)
    return raw.quantize(CENT, rounding=ROUND_DOWN)


def claim_reward(minutes: int) -> Decimal:
    return Decimal(minutes // MINUTES_PER_HOUR) * MINING_RATE_PER_HOUR


def _require_active(acc: Account) -> None:
    if not acc.mining_active or acc.mining_started_at is None:
        raise InvalidOperation("Mining is not active")


def start(db: LedgerSession, account_id: int, now: datetime | None = None) -> Account:
    now = now or utcnow()
    acc = get_account(db, account_id, for_update=True)
    if acc.mining_active:
        raise InvalidOperation("Mining is already active")

    acc.mining_active = True
    acc.mining_started_at = now
    acc = db.save_account(acc)
    log.info("mining started account=%s at=%s", acc.id, now.isoformat())
    return acc


def stop(db: LedgerSession, account_id: int, now: datetime | None = None) -> MiningResult:
    now = now or utcnow()
    acc = get_account(db, account_id, for_update=True)
    _require_active(acc)

    minutes = elapsed_minutes(acc.mining_started_at, now)
    reward = stop_reward(minutes)

    acc.mining_active = False
    acc.mining_started_at = None
    acc = db.save_account(acc)

    if reward > 0:
        acc = apply_delta(db, acc.id, tai_delta=reward)
        hours, mins = divmod(minutes, MINUTES_PER_HOUR)
        transactions.record(
            db,
            acc.id,
            TransactionType.MINING_REWARD,
            reward,
            Currency.TAI,
            description=f"Mining reward for {hours}h {mins}m",
            now=now,
        )

    log.info("mining stopped account=%s minutes=%s reward=%s", acc.id, minutes, reward)
    return MiningResult(reward=reward, elapsed_minutes=minutes, account=acc)


def claim(db: LedgerSession, account_id: int, now: datetime | None = None) -> MiningResult:
    now = now or utcnow()
    acc = get_account(db, account_id, for_update=True)
    _require_active(acc)

    minutes = elapsed_minutes(acc.mining_started_at, now)
    if minutes < MINUTES_PER_HOUR:
        raise NoRewardYet(MINUTES_PER_HOUR - minutes)

    hours = minutes // MINUTES_PER_HOUR
    reward = claim_reward(minutes)

    # session stays active, the next hour counts from now
    acc.mining_started_at = now
    db.save_account(acc)

    acc = apply_delta(db, acc.id, tai_delta=reward)
    transactions.record(
        db,
        acc.id,
        TransactionType.MINING_REWARD,
        reward,
        Currency.TAI,
        description=f"Mining reward for {hours} hours",
        now=now,
    )

    log.info("mining claimed account=%s hours=%s reward=%s", acc.id, hours, reward)
    return MiningResult(reward=reward, elapsed_minutes=minutes, account=acc)


def status(db: LedgerSession, account_id: int, now: datetime | None = None) -> MiningStatus:
    now = now or utcnow()
    acc = get_account(db, account_id)
    if not acc.mining_active:
        return MiningStatus(
            active=False,
            started_at=None,
            elapsed_minutes=0,
            accrued=ZERO,
            claimable=ZERO,
            minutes_to_next_claim=None,
        )

    minutes = elapsed_minutes(acc.mining_started_at, now)
    return MiningStatus(
        active=True,
        started_at=acc.mining_started_at,
        elapsed_minutes=minutes,
        accrued=stop_reward(minutes),
        claimable=claim_reward(minutes),
        minutes_to_next_claim=max(MINUTES_PER_HOUR - minutes, 0),
    )
