from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from tai_ledger.core import transactions
from tai_ledger.core.amounts import AMOUNT_CONTEXT, positive_amount, round_down_18
from tai_ledger.core.constants import TAI_TO_USDT_RATE
from tai_ledger.core.errors import InvalidOperation
from tai_ledger.core.ledger import apply_delta
from tai_ledger.domain import Currency, TransactionType
from tai_ledger.storage.base import LedgerSession

log = logging.getLogger(__name__)


def quote(amount: Decimal, from_currency: Currency, to_currency: Currency) -> Decimal:
    """Fixed-rate price of `amount` in the target currency, rounded down to 18 places both ways."""
    if from_currency is Currency.TAI and to_currency is Currency.USDT:
        return round_down_18(AMOUNT_CONTEXT.multiply(amount, TAI_TO_USDT_RATE))
    if from_currency is Currency.USDT and to_currency is Currency.TAI:
        return round_down_18(AMOUNT_CONTEXT.divide(amount, TAI_TO_USDT_RATE))
    raise InvalidOperation(f"Unsupported conversion: {from_currency.value} -> {to_currency.value}")


def convert(
    db: LedgerSession,
    account_id: int,
    amount: Decimal | int | str,
    from_currency: Currency | str,
    to_currency: Currency | str,
    now: datetime | None = None,
) -> Decimal:
    amount = positive_amount(amount)
    src = Currency.parse(from_currency)
    dst = Currency.parse(to_currency)

    if src is dst:
        raise InvalidOperation("Cannot convert to the same currency")

    converted = quote(amount, src, dst)
    if converted <= 0:
        raise InvalidOperation(f"Amount too small to convert: {amount} {src.value}")

    if src is Currency.TAI:
        apply_delta(db, account_id, tai_delta=amount.copy_negate(), usdt_delta=converted)
    else:
        apply_delta(db, account_id, tai_delta=converted, usdt_delta=amount.copy_negate())

    transactions.record(
        db,
        account_id,
        TransactionType.CONVERSION,
        amount,
        src,
        description=f"Converted {amount} {src.value} to {converted:.2f} {dst.value}",
        now=now,
    )

    log.info("converted account=%s %s %s -> %s %s", account_id, amount, src.value, converted, dst.value)
    return converted
