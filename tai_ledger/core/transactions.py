from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from tai_ledger.core.amounts import positive_amount
from tai_ledger.core.errors import InvalidOperation, NotFound
from tai_ledger.domain import (
    Currency,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
    utcnow,
)
from tai_ledger.storage.base import LedgerSession


def record(
    db: LedgerSession,
    account_id: int,
    tx_type: TransactionType | str,
    amount: Decimal,
    currency: Currency | str,
    status: TransactionStatus | str = TransactionStatus.COMPLETED,
    description: str = "",
    counterparty_id: int | None = None,
    now: datetime | None = None,
) -> TransactionRecord:
    """
    Append one entry to the log. Entries are write-once; only the status of a
    withdrawal-linked entry may change afterwards (see set_status).
    """
    amount = positive_amount(amount, "Transaction amount")

    return db.add_transaction(
        TransactionRecord(
            account_id=int(account_id),
            type=TransactionType.parse(tx_type),
            amount=amount,
            currency=Currency.parse(currency),
            status=TransactionStatus.parse(status),
            description=description or "",
            counterparty_id=counterparty_id,
            created_at=now or utcnow(),
        )
    )


def list_for(db: LedgerSession, account_id: int) -> list[TransactionRecord]:
    rows = db.list_transactions(int(account_id))
    return sorted(rows, key=lambda tx: (tx.created_at, tx.id), reverse=True)


_STATUS_FLOW = {
    (TransactionStatus.PENDING, TransactionStatus.COMPLETED),
    (TransactionStatus.PENDING, TransactionStatus.REJECTED),
}


def set_status(db: LedgerSession, transaction_id: int, status: TransactionStatus) -> TransactionRecord:
    tx = db.get_transaction(transaction_id)
    if tx is None:
        raise NotFound(f"Transaction {transaction_id} not found")
    if (tx.status, status) not in _STATUS_FLOW:
        raise InvalidOperation(f"Invalid transaction status change: {tx.status.value} -> {status.value}")
    return db.set_transaction_status(transaction_id, status)
