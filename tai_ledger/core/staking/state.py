from __future__ import annotations

from tai_ledger.core.errors import InvalidOperation
from tai_ledger.domain import StakingStatus

ALLOWED = {
    (StakingStatus.ACTIVE, StakingStatus.COMPLETED),
    (StakingStatus.ACTIVE, StakingStatus.WITHDRAWN),
}


def assert_transition(from_state: StakingStatus, to_state: StakingStatus) -> None:
    if (from_state, to_state) not in ALLOWED:
        raise InvalidOperation(f"Invalid transition: {from_state.value} -> {to_state.value}")


def is_closed(state: StakingStatus) -> bool:
    return not any(src == state for src, _ in ALLOWED)
