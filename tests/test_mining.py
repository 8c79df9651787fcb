from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tai_ledger.core.errors import InvalidOperation, NoRewardYet
from tai_ledger.core.mining import claim_reward, elapsed_minutes, stop_reward
from tai_ledger.domain import TransactionType

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _mining_rewards(service, account_id: int):
    return [t for t in service.transactions.list_for(account_id) if t.type is TransactionType.MINING_REWARD]


def test_reward_formulas() -> None:
    assert stop_reward(150) == Decimal("0.62")
    assert stop_reward(59) == Decimal("0.24")
    assert stop_reward(0) == Decimal("0.00")
    assert claim_reward(119) == Decimal("0.25")
    assert claim_reward(180) == Decimal("0.75")
    assert elapsed_minutes(T0, T0 - timedelta(minutes=3)) == 0
    assert elapsed_minutes(T0, T0 + timedelta(seconds=119)) == 1


def test_stop_after_150_minutes_credits_062(service, make_account) -> None:
    acc = make_account()
    service.mining.start(acc.id, now=T0)

    res = service.mining.stop(acc.id, now=T0 + timedelta(minutes=150))

    assert res.reward == Decimal("0.62")
    assert res.elapsed_minutes == 150
    after = service.accounts.get(acc.id)
    assert after.tai_balance == Decimal("0.62")
    assert after.mining_active is False
    assert after.mining_started_at is None

    entries = _mining_rewards(service, acc.id)
    assert len(entries) == 1
    assert entries[0].amount == Decimal("0.62")
    assert entries[0].description == "Mining reward for 2h 30m"


def test_stop_with_zero_reward_writes_no_entry(service, make_account) -> None:
    acc = make_account()
    service.mining.start(acc.id, now=T0)

    res = service.mining.stop(acc.id, now=T0 + timedelta(minutes=2))

    assert res.reward == Decimal("0")
    assert service.accounts.get(acc.id).mining_active is False
    assert _mining_rewards(service, acc.id) == []


def test_stop_requires_active_session(service, make_account) -> None:
    acc = make_account()
    with pytest.raises(InvalidOperation):
        service.mining.stop(acc.id, now=T0)


def test_start_twice_is_rejected(service, make_account) -> None:
    acc = make_account()
    service.mining.start(acc.id, now=T0)
    with pytest.raises(InvalidOperation):
        service.mining.start(acc.id, now=T0 + timedelta(minutes=30))
    assert service.accounts.get(acc.id).mining_started_at == T0


def test_claim_before_an_hour(service, make_account) -> None:
    acc = make_account()
    service.mining.start(acc.id, now=T0)

    with pytest.raises(NoRewardYet) as exc:
        service.mining.claim(acc.id, now=T0 + timedelta(minutes=45))

    assert exc.value.minutes_left == 15
    assert exc.value.to_dict()["minutes_left"] == 15
    assert service.accounts.get(acc.id).tai_balance == Decimal("0")


def test_claim_pays_whole_hours_and_restarts_clock(service, make_account) -> None:
    """A second claim within the same hour raises NoRewardYet."""

    acc = make_account()
    service.mining.start(acc.id, now=T0)

    t1 = T0 + timedelta(minutes=130)
    res = service.mining.claim(acc.id, now=t1)

    assert res.reward == Decimal("0.50")
    after = service.accounts.get(acc.id)
    assert after.tai_balance == Decimal("0.5")
    assert after.mining_active is True
    assert after.mining_started_at == t1
    assert _mining_rewards(service, acc.id)[0].description == "Mining reward for 2 hours"

    with pytest.raises(NoRewardYet):
        service.mining.claim(acc.id, now=t1 + timedelta(minutes=59))

    res2 = service.mining.claim(acc.id, now=t1 + timedelta(minutes=60))
    assert res2.reward == Decimal("0.25")
    assert service.accounts.get(acc.id).tai_balance == Decimal("0.75")
    assert len(_mining_rewards(service, acc.id)) == 2


def test_status_view(service, make_account) -> None:
    acc = make_account()
    idle = service.mining.status(acc.id, now=T0)
    assert idle.active is False
    assert idle.minutes_to_next_claim is None

    service.mining.start(acc.id, now=T0)
    st = service.mining.status(acc.id, now=T0 + timedelta(minutes=75))
    assert st.active is True
    assert st.started_at == T0
    assert st.elapsed_minutes == 75
    assert st.accrued == Decimal("0.31")
    assert st.claimable == Decimal("0.25")
    assert st.minutes_to_next_claim == 0
