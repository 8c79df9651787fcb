from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from tai_ledger.core import transactions
from tai_ledger.core.amounts import AMOUNT_CONTEXT, positive_amount
from tai_ledger.core.constants import STAKING_TERM_DAYS
from tai_ledger.core.errors import InvalidOperation, NotFound
from tai_ledger.core.ledger import apply_delta
from tai_ledger.core.staking.calculator import expected_return, maturity
from tai_ledger.core.staking.state import assert_transition, is_closed
from tai_ledger.domain import (
    Currency,
    StakingPosition,
    StakingStatus,
    TransactionType,
    utcnow,
)
from tai_ledger.storage.base import LedgerSession

log = logging.getLogger(__name__)


def get_position_for_update(db: LedgerSession, staking_id: int, account_id: int | None = None) -> StakingPosition:
    pos = db.get_staking(int(staking_id), for_update=True)
    # a foreign position is reported exactly like a missing one
    if pos is None or (account_id is not None and pos.account_id != int(account_id)):
        raise NotFound(f"Staking {staking_id} not found")
    return pos


def stake(
    db: LedgerSession,
    account_id: int,
    amount: Decimal | int | str,
    now: datetime | None = None,
) -> StakingPosition:
    now = now or utcnow()
    amt = positive_amount(amount)

    apply_delta(db, account_id, tai_delta=amt.copy_negate())

    end_at = maturity(now)
    pos = db.add_staking(
        StakingPosition(
            account_id=int(account_id),
            amount=amt,
            started_at=now,
            end_at=end_at,
            status=StakingStatus.ACTIVE,
            last_reward_at=now,
        )
    )

    transactions.record(
        db,
        account_id,
        TransactionType.STAKING,
        amt,
        Currency.TAI,
        description=f"Staked {amt} TAI for {STAKING_TERM_DAYS} days until {end_at.strftime('%b %d, %Y')}",
        now=now,
    )

    log.info("staking opened id=%s account=%s amount=%s end_at=%s", pos.id, account_id, amt, end_at.isoformat())
    return pos


def settle_position(db: LedgerSession, pos: StakingPosition, now: datetime) -> Decimal:
    """
    Close a matured position: principal plus the fixed-term return go back in
    one ledger delta. Returns the yield credited.
    """
    assert_transition(pos.status, StakingStatus.COMPLETED)

    reward = expected_return(pos.amount)
    apply_delta(db, pos.account_id, tai_delta=AMOUNT_CONTEXT.add(pos.amount, reward))

    if reward > 0:
        transactions.record(
            db,
            pos.account_id,
            TransactionType.STAKING_REWARD,
            reward,
            Currency.TAI,
            description=f"Staking reward for position {pos.id}",
            now=now,
        )
    transactions.record(
        db,
        pos.account_id,
        TransactionType.STAKING,
        pos.amount,
        Currency.TAI,
        description=f"Released {pos.amount} TAI from matured staking",
        now=now,
    )

    pos.status = StakingStatus.COMPLETED
    pos.last_reward_at = now
    db.save_staking(pos)

    log.info("staking settled id=%s account=%s reward=%s", pos.id, pos.account_id, reward)
    return reward


def settle_matured(db: LedgerSession, now: datetime | None = None, account_id: int | None = None) -> list[dict]:
    """
    Settle every active position whose term has ended.
    Returns list of {staking_id, account_id, reward} for what was settled.
    """
    now = now or utcnow()
    results: list[dict] = []

    for pos in db.list_stakings(account_id=account_id, status=StakingStatus.ACTIVE):
        if not pos.is_matured(now):
            continue
        locked = get_position_for_update(db, pos.id)
        if is_closed(locked.status):
            continue
        reward = settle_position(db, locked, now)
        results.append({"staking_id": locked.id, "account_id": locked.account_id, "reward": reward})

    return results


def unstake(
    db: LedgerSession,
    account_id: int,
    staking_id: int,
    now: datetime | None = None,
) -> StakingPosition:
    now = now or utcnow()
    pos = get_position_for_update(db, staking_id, account_id)

    if is_closed(pos.status):
        raise InvalidOperation(f"Staking {pos.id} is already {pos.status.value}")

    if pos.is_matured(now):
        settle_position(db, pos, now)
        return get_position_for_update(db, pos.id)

    # early exit: principal only, no yield
    assert_transition(pos.status, StakingStatus.WITHDRAWN)
    apply_delta(db, pos.account_id, tai_delta=pos.amount)
    transactions.record(
        db,
        pos.account_id,
        TransactionType.STAKING,
        pos.amount,
        Currency.TAI,
        description=f"Unstaked {pos.amount} TAI before maturity",
        now=now,
    )

    pos.status = StakingStatus.WITHDRAWN
    pos.last_reward_at = now
    pos = db.save_staking(pos)

    log.info("staking withdrawn early id=%s account=%s amount=%s", pos.id, pos.account_id, pos.amount)
    return pos


def list_for(db: LedgerSession, account_id: int, now: datetime | None = None) -> list[StakingPosition]:
    settle_matured(db, now, account_id=int(account_id))
    rows = db.list_stakings(account_id=int(account_id))
    return sorted(rows, key=lambda p: (p.started_at, p.id), reverse=True)


def get(db: LedgerSession, account_id: int, staking_id: int, now: datetime | None = None) -> StakingPosition:
    now = now or utcnow()
    pos = get_position_for_update(db, staking_id, account_id)
    if pos.status is StakingStatus.ACTIVE and pos.is_matured(now):
        settle_position(db, pos, now)
        pos = get_position_for_update(db, staking_id, account_id)
    return pos
