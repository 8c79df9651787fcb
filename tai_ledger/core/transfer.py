from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from tai_ledger.core import transactions
from tai_ledger.core.amounts import positive_amount
from tai_ledger.core.errors import InvalidOperation, RecipientNotFound
from tai_ledger.core.ledger import apply_delta, get_account
from tai_ledger.domain import Currency, TransactionType, utcnow
from tai_ledger.storage.base import LedgerSession

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferReceipt:
    amount: Decimal
    recipient_name: str
    recipient_tai_id: str


def transfer(
    db: LedgerSession,
    sender_id: int,
    recipient_tai_id: str,
    amount: Decimal | int | str,
    now: datetime | None = None,
) -> TransferReceipt:
    """
    Move TAI between two accounts in one unit of work.

    Both accounts are locked lowest id first so two opposite transfers can
    never wait on each other.
    """
    now = now or utcnow()
    amount = positive_amount(amount)

    tai_id = (recipient_tai_id or "").strip().upper()
    recipient = db.find_account(tai_id=tai_id) if tai_id else None
    if recipient is None:
        raise RecipientNotFound(f"Recipient {recipient_tai_id!r} not found")

    sender = get_account(db, sender_id)
    if sender.id == recipient.id:
        raise InvalidOperation("Cannot transfer to yourself")

    for account_id in sorted((sender.id, recipient.id)):
        get_account(db, account_id, for_update=True)

    apply_delta(db, sender.id, tai_delta=amount.copy_negate())
    apply_delta(db, recipient.id, tai_delta=amount)

    transactions.record(
        db,
        sender.id,
        TransactionType.TRANSFER_SENT,
        amount,
        Currency.TAI,
        description=f"Transfer to {recipient.name} ({recipient.tai_id})",
        counterparty_id=recipient.id,
        now=now,
    )
    transactions.record(
        db,
        recipient.id,
        TransactionType.TRANSFER_RECEIVED,
        amount,
        Currency.TAI,
        description=f"Transfer from {sender.name} ({sender.tai_id})",
        counterparty_id=sender.id,
        now=now,
    )

    log.info("transfer sender=%s recipient=%s amount=%s", sender.id, recipient.id, amount)
    return TransferReceipt(amount=amount, recipient_name=recipient.name, recipient_tai_id=recipient.tai_id)
