from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tai_ledger.core import transactions
from tai_ledger.core.errors import InvalidOperation
from tai_ledger.domain import Currency, TransactionStatus, TransactionType

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_list_for_newest_first(service, make_account) -> None:
    acc = make_account()
    service.transactions.record(acc.id, "deposit", Decimal("1"), "TAI", now=T0)
    service.transactions.record(acc.id, "deposit", Decimal("2"), "TAI", now=T0 + timedelta(minutes=5))
    service.transactions.record(acc.id, "deposit", Decimal("3"), "TAI", now=T0 + timedelta(minutes=5))

    amounts = [t.amount for t in service.transactions.list_for(acc.id)]
    # same timestamp: higher id first
    assert amounts == [Decimal("3"), Decimal("2"), Decimal("1")]


def test_record_rejects_non_positive_amount(service, make_account) -> None:
    acc = make_account()
    with pytest.raises(InvalidOperation):
        service.transactions.record(acc.id, "deposit", Decimal("0"), "TAI")


@pytest.mark.parametrize(
    "tx_type,currency",
    [("bogus", "TAI"), ("deposit", "BTC")],
)
def test_record_rejects_unknown_enums(service, make_account, tx_type, currency) -> None:
    acc = make_account()
    with pytest.raises(InvalidOperation):
        service.transactions.record(acc.id, tx_type, Decimal("1"), currency)


def test_status_only_leaves_pending(service, make_account) -> None:
    acc = make_account()
    with service.repo.unit_of_work() as db:
        tx = transactions.record(
            db, acc.id, TransactionType.WITHDRAWAL, Decimal("1"), Currency.TAI, status=TransactionStatus.PENDING
        )
        done = transactions.set_status(db, tx.id, TransactionStatus.COMPLETED)
        assert done.status is TransactionStatus.COMPLETED

    with pytest.raises(InvalidOperation):
        with service.repo.unit_of_work() as db:
            transactions.set_status(db, tx.id, TransactionStatus.REJECTED)
