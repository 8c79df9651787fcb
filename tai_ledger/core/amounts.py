"""
Amounts as the ledger stores them: finite, below MAX_AMOUNT, at most 18
decimal places. Anything finer is rejected instead of being rounded by the
database.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal

from tai_ledger.core.constants import MAX_AMOUNT, Q18
from tai_ledger.core.errors import InvalidOperation

# wide enough for every NUMERIC(38, 18) value, independent of the calling thread's context
AMOUNT_CONTEXT = Context(prec=60)


def to_amount(x: Decimal | int | str, what: str = "Amount") -> Decimal:
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x))
    except ArithmeticError:
        raise InvalidOperation(f"{what} is not a number: {x!r}") from None

    if not d.is_finite():
        raise InvalidOperation(f"{what} must be a finite number")
    if d.copy_abs() >= MAX_AMOUNT:
        raise InvalidOperation(f"{what} must be below {MAX_AMOUNT:f}")
    if round_down_18(d) != d:
        raise InvalidOperation(f"{what} has more than 18 decimal places")
    return d


def positive_amount(x: Decimal | int | str, what: str = "Amount") -> Decimal:
    d = to_amount(x, what)
    if d <= 0:
        raise InvalidOperation(f"{what} must be > 0")
    return d


def round_down_18(x: Decimal) -> Decimal:
    return x.quantize(Q18, rounding=ROUND_DOWN, context=AMOUNT_CONTEXT)
