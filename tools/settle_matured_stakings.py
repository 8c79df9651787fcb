from __future__ import annotations

from tai_ledger.core.config import get_settings
from tai_ledger.service import build_service


def main() -> None:
    settings = get_settings()
    if settings.LEDGER_BACKEND.strip().lower() != "sql":
        raise SystemExit("LEDGER_BACKEND must be 'sql' to settle persisted stakings.")

    svc = build_service(settings)
    settled = svc.staking.settle_matured()

    if not settled:
        print("No matured ACTIVE stakings found.")
        return

    for row in settled:
        print(f"settled staking={row['staking_id']} account={row['account_id']} reward={row['reward']}")
    print("SETTLE DONE")
    print("settled_positions:", len(settled))


if __name__ == "__main__":
    main()
