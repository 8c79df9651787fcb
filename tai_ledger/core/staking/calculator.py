from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_DOWN, getcontext, localcontext

from tai_ledger.core.amounts import AMOUNT_CONTEXT
from tai_ledger.core.constants import DAYS_IN_YEAR, Q18, STAKING_APY_PERCENT, STAKING_TERM_DAYS

getcontext().prec = 60


def _quantize_18(x: Decimal) -> Decimal:
    if x <= 0:
        return Decimal("0").quantize(Q18)
    return x.quantize(Q18, rounding=ROUND_DOWN)


def daily_rate(apy_percent: Decimal = STAKING_APY_PERCENT) -> Decimal:
    with localcontext(AMOUNT_CONTEXT):
        return _quantize_18(Decimal(apy_percent) / Decimal(DAYS_IN_YEAR) / Decimal(100))


def expected_return(
    amount: Decimal,
    apy_percent: Decimal = STAKING_APY_PERCENT,
    term_days: int = STAKING_TERM_DAYS,
) -> Decimal:
    """
    Simple-rate yield for a full term:
    return = amount * apy% * term_days / (365 * 100)
    - One division, so the daily rate is never rounded on its own.
    - Rounds DOWN to 18 decimals; rounding never creates value.
    """
    if amount <= 0 or apy_percent <= 0 or term_days <= 0:
        return Decimal("0").quantize(Q18)

    # request threads start from the default 28-digit context
    with localcontext(AMOUNT_CONTEXT):
        numerator = Decimal(amount) * Decimal(apy_percent) * Decimal(term_days)
        return _quantize_18(numerator / (Decimal(DAYS_IN_YEAR) * Decimal(100)))


def maturity(started_at: datetime, term_days: int = STAKING_TERM_DAYS) -> datetime:
    return started_at + timedelta(days=term_days)
