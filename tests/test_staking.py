from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tai_ledger.core.errors import InsufficientFunds, InvalidOperation, NotFound
from tai_ledger.core.staking.calculator import daily_rate, expected_return
from tai_ledger.core.staking.state import assert_transition, is_closed
from tai_ledger.domain import StakingStatus, TransactionType

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_expected_return_for_100_tai() -> None:
    assert expected_return(Decimal("100")) == Decimal("0.986301369863013698")
    assert expected_return(Decimal("0")) == Decimal("0")
    assert daily_rate() == Decimal("0.000328767123287671")


def test_state_machine() -> None:
    assert_transition(StakingStatus.ACTIVE, StakingStatus.COMPLETED)
    assert_transition(StakingStatus.ACTIVE, StakingStatus.WITHDRAWN)
    with pytest.raises(InvalidOperation):
        assert_transition(StakingStatus.COMPLETED, StakingStatus.WITHDRAWN)
    with pytest.raises(InvalidOperation):
        assert_transition(StakingStatus.WITHDRAWN, StakingStatus.ACTIVE)
    assert is_closed(StakingStatus.COMPLETED)
    assert not is_closed(StakingStatus.ACTIVE)


def test_stake_debits_and_opens_position(service, make_account) -> None:
    acc = make_account(tai=100)

    pos = service.staking.stake(acc.id, 100, now=T0)

    assert service.accounts.get(acc.id).tai_balance == Decimal("0")
    assert pos.status is StakingStatus.ACTIVE
    assert pos.amount == Decimal("100")
    assert pos.started_at == T0
    assert pos.end_at == T0 + timedelta(days=30)
    assert pos.last_reward_at == T0

    (entry,) = service.transactions.list_for(acc.id)
    assert entry.type is TransactionType.STAKING
    assert entry.amount == Decimal("100")
    assert entry.description == "Staked 100 TAI for 30 days until Jan 31, 2026"


def test_stake_validation(service, make_account) -> None:
    acc = make_account(tai=5)
    with pytest.raises(InvalidOperation):
        service.staking.stake(acc.id, 0)
    with pytest.raises(InsufficientFunds):
        service.staking.stake(acc.id, 6)
    assert service.accounts.get(acc.id).tai_balance == Decimal("5")
    assert service.staking.list_for(acc.id, now=T0) == []


def test_not_settled_before_maturity(service, make_account) -> None:
    acc = make_account(tai=100)
    service.staking.stake(acc.id, 100, now=T0)

    assert service.staking.settle_matured(now=T0 + timedelta(days=29, hours=23)) == []
    (pos,) = service.staking.list_for(acc.id, now=T0 + timedelta(days=29))
    assert pos.status is StakingStatus.ACTIVE


def test_matured_position_settles_exactly_once(service, make_account) -> None:
    acc = make_account(tai=100)
    pos = service.staking.stake(acc.id, 100, now=T0)
    later = T0 + timedelta(days=45)

    settled = service.staking.settle_matured(now=later)

    assert settled == [{"staking_id": pos.id, "account_id": acc.id, "reward": Decimal("0.986301369863013698")}]
    assert service.accounts.get(acc.id).tai_balance == Decimal("100.986301369863013698")

    # a second sweep and a lazy read change nothing
    assert service.staking.settle_matured(now=later + timedelta(days=1)) == []
    (closed,) = service.staking.list_for(acc.id, now=later + timedelta(days=2))
    assert closed.status is StakingStatus.COMPLETED
    assert closed.last_reward_at == later
    assert service.accounts.get(acc.id).tai_balance == Decimal("100.986301369863013698")

    types = [t.type for t in service.transactions.list_for(acc.id)]
    assert types.count(TransactionType.STAKING_REWARD) == 1
    assert types.count(TransactionType.STAKING) == 2


def test_lazy_settlement_on_list(service, make_account) -> None:
    acc = make_account(tai=10)
    service.staking.stake(acc.id, 10, now=T0)

    (pos,) = service.staking.list_for(acc.id, now=T0 + timedelta(days=30))

    assert pos.status is StakingStatus.COMPLETED
    assert service.accounts.get(acc.id).tai_balance == Decimal("10") + expected_return(Decimal("10"))


def test_lazy_settlement_on_get(service, make_account) -> None:
    acc = make_account(tai=10)
    pos = service.staking.stake(acc.id, 10, now=T0)

    assert service.staking.get(acc.id, pos.id, now=T0 + timedelta(days=1)).status is StakingStatus.ACTIVE
    assert service.staking.get(acc.id, pos.id, now=T0 + timedelta(days=31)).status is StakingStatus.COMPLETED


def test_early_unstake_returns_principal_only(service, make_account) -> None:
    acc = make_account(tai=40)
    pos = service.staking.stake(acc.id, 40, now=T0)

    out = service.staking.unstake(acc.id, pos.id, now=T0 + timedelta(days=10))

    assert out.status is StakingStatus.WITHDRAWN
    assert service.accounts.get(acc.id).tai_balance == Decimal("40")
    assert service.transactions.list_for(acc.id)[0].description == "Unstaked 40 TAI before maturity"

    with pytest.raises(InvalidOperation):
        service.staking.unstake(acc.id, pos.id, now=T0 + timedelta(days=11))
    # withdrawn positions are never settled later
    assert service.staking.settle_matured(now=T0 + timedelta(days=60)) == []


def test_unstake_after_maturity_settles(service, make_account) -> None:
    acc = make_account(tai=100)
    pos = service.staking.stake(acc.id, 100, now=T0)

    out = service.staking.unstake(acc.id, pos.id, now=T0 + timedelta(days=30))

    assert out.status is StakingStatus.COMPLETED
    assert service.accounts.get(acc.id).tai_balance == Decimal("100.986301369863013698")


def test_foreign_or_unknown_position(service, make_account) -> None:
    owner = make_account(tai=10)
    other = make_account()
    pos = service.staking.stake(owner.id, 10, now=T0)

    with pytest.raises(NotFound):
        service.staking.unstake(other.id, pos.id, now=T0)
    with pytest.raises(NotFound):
        service.staking.get(owner.id, 9999, now=T0)


def test_settled_position_cannot_be_unstaked(service, make_account) -> None:
    acc = make_account(tai=10)
    pos = service.staking.stake(acc.id, 10, now=T0)
    service.staking.settle_matured(now=T0 + timedelta(days=30))

    with pytest.raises(InvalidOperation):
        service.staking.unstake(acc.id, pos.id, now=T0 + timedelta(days=31))
    assert service.accounts.get(acc.id).tai_balance == Decimal("10") + expected_return(Decimal("10"))
