from __future__ import annotations

from decimal import Decimal
from typing import Any


class LedgerError(RuntimeError):
    """Base class for every failure the ledger core reports to its caller."""

    kind = "ledger_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"message": self.message, "kind": self.kind}
        for key, value in self.details.items():
            out[key] = str(value) if isinstance(value, Decimal) else value
        return out


class NotFound(LedgerError):
    kind = "not_found"


class RecipientNotFound(NotFound):
    kind = "recipient_not_found"


class InsufficientFunds(LedgerError):
    kind = "insufficient_funds"

    def __init__(self, currency: str, available: Decimal, requested: Decimal) -> None:
        super().__init__(
            f"Insufficient {currency} balance",
            currency=currency,
            available=available,
            requested=requested,
        )


class InvalidOperation(LedgerError):
    kind = "invalid_operation"


class NoRewardYet(LedgerError):
    kind = "no_reward_yet"

    def __init__(self, minutes_left: int) -> None:
        super().__init__("No reward available yet", minutes_left=minutes_left)
        self.minutes_left = minutes_left


class DuplicateIdentity(LedgerError):
    """A unique identity field (email, tai id, referral code) is already taken."""

    kind = "duplicate_identity"

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists", field=field)
        self.field = field


class ConcurrentUpdate(LedgerError):
    kind = "concurrent_update"


# Raised by the request layer only; the core never checks identity or roles.
class Unauthorized(LedgerError):
    kind = "unauthorized"


class Forbidden(LedgerError):
    kind = "forbidden"
