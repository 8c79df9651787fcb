from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from tai_ledger.core import transactions
from tai_ledger.core.amounts import positive_amount
from tai_ledger.core.errors import InvalidOperation, NotFound
from tai_ledger.core.ledger import apply_delta, get_account
from tai_ledger.domain import (
    Currency,
    TransactionStatus,
    TransactionType,
    Withdrawal,
    WithdrawalStatus,
    utcnow,
)
from tai_ledger.storage.base import LedgerSession

log = logging.getLogger(__name__)

# withdrawal decision -> status of the linked log entry
_LINKED_STATUS = {
    WithdrawalStatus.APPROVED: TransactionStatus.COMPLETED,
    WithdrawalStatus.REJECTED: TransactionStatus.REJECTED,
}


def _delta(currency: Currency, amount: Decimal) -> dict[str, Decimal]:
    return {"tai_delta": amount} if currency is Currency.TAI else {"usdt_delta": amount}


def request(
    db: LedgerSession,
    account_id: int,
    amount: Decimal | int | str,
    currency: Currency | str,
    address: str,
    now: datetime | None = None,
) -> Withdrawal:
    """
    Reserve `amount` and queue it for an admin decision.

    The balance is debited now, so the reserved funds cannot be spent twice
    while the request is pending. Rejection refunds them.
    """
    now = now or utcnow()
    amount = positive_amount(amount)
    cur = Currency.parse(currency)
    address = (address or "").strip()

    if not address:
        raise InvalidOperation("Withdrawal address is required")

    acc = apply_delta(db, account_id, **_delta(cur, amount.copy_negate()))
    tx = transactions.record(
        db,
        acc.id,
        TransactionType.WITHDRAWAL,
        amount,
        cur,
        status=TransactionStatus.PENDING,
        description=f"Withdrawal to {address}",
        now=now,
    )
    w = db.add_withdrawal(
        Withdrawal(
            account_id=acc.id,
            amount=amount,
            currency=cur,
            address=address,
            created_at=now,
            transaction_id=tx.id,
        )
    )

    log.info("withdrawal requested id=%s account=%s amount=%s %s", w.id, acc.id, amount, cur.value)
    return w


def process(
    db: LedgerSession,
    withdrawal_id: int,
    admin_id: int,
    decision: WithdrawalStatus | str,
    now: datetime | None = None,
) -> Withdrawal:
    now = now or utcnow()
    target = WithdrawalStatus.parse(decision)
    if target not in _LINKED_STATUS:
        raise InvalidOperation(f"Unsupported decision: {target.value}")

    w = db.get_withdrawal(int(withdrawal_id), for_update=True)
    if w is None:
        raise NotFound(f"Withdrawal {withdrawal_id} not found")
    if w.status is not WithdrawalStatus.PENDING:
        raise InvalidOperation(f"Withdrawal {w.id} already {w.status.value}")

    get_account(db, admin_id)

    if target is WithdrawalStatus.REJECTED:
        apply_delta(db, w.account_id, **_delta(w.currency, w.amount))

    if w.transaction_id is not None:
        transactions.set_status(db, w.transaction_id, _LINKED_STATUS[target])

    w.status = target
    w.processed_at = now
    w.processed_by = int(admin_id)
    w = db.save_withdrawal(w)

    log.info("withdrawal processed id=%s decision=%s admin=%s", w.id, target.value, admin_id)
    return w


def pending(db: LedgerSession) -> list[Withdrawal]:
    rows = db.list_withdrawals(status=WithdrawalStatus.PENDING)
    return sorted(rows, key=lambda w: (w.created_at, w.id))


def list_for(db: LedgerSession, account_id: int) -> list[Withdrawal]:
    rows = db.list_withdrawals(account_id=int(account_id))
    return sorted(rows, key=lambda w: (w.created_at, w.id), reverse=True)
