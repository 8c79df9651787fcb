from __future__ import annotations

from decimal import Decimal

import pytest

from tai_ledger.core import ledger
from tai_ledger.core.errors import ConcurrentUpdate, InsufficientFunds
from tai_ledger.database import normalize_db_url


def test_unit_of_work_rolls_back_everything(service, make_account) -> None:
    """A failure late in an operation undoes the writes made before it."""

    acc = make_account(tai=10)

    with pytest.raises(InsufficientFunds):
        with service.repo.unit_of_work() as db:
            ledger.apply_delta(db, acc.id, tai_delta=5)
            ledger.apply_delta(db, acc.id, tai_delta=-100)

    assert service.accounts.get(acc.id).tai_balance == Decimal("10")


def test_stale_save_is_rejected(service, make_account) -> None:
    acc = make_account()
    with pytest.raises(ConcurrentUpdate):
        with service.repo.unit_of_work() as db:
            first = db.get_account(acc.id)
            second = db.get_account(acc.id)
            first.tai_balance = Decimal("1")
            db.save_account(first)
            second.tai_balance = Decimal("2")
            db.save_account(second)

    assert service.accounts.get(acc.id).tai_balance == Decimal("0")


def test_amounts_keep_full_precision(service, make_account) -> None:
    acc = make_account(tai="123456789.000000000000000001")
    assert service.accounts.get(acc.id).tai_balance == Decimal("123456789.000000000000000001")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("'postgres://u:p@h/db'", "postgresql://u:p@h/db"),
        ("${{Postgres.DATABASE_URL}}", ""),
        ("  sqlite+pysqlite:///./local.db ", "sqlite+pysqlite:///./local.db"),
    ],
)
def test_normalize_db_url(raw: str, expected: str) -> None:
    assert normalize_db_url(raw) == expected
