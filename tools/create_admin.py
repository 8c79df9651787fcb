from __future__ import annotations

from tai_ledger.core.config import get_settings
from tai_ledger.domain import Role
from tai_ledger.service import build_service


def main() -> None:
    settings = get_settings()
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        raise SystemExit("ADMIN_EMAIL and ADMIN_PASSWORD must be set.")

    svc = build_service(settings)
    email = settings.ADMIN_EMAIL.strip().lower()

    existing = [a for a in svc.accounts.list_all() if a.email == email]
    if existing:
        print("Admin exists:", existing[0].id, existing[0].tai_id, existing[0].role.value)
        return

    acc = svc.accounts.create(
        settings.ADMIN_NAME or "Administrator",
        email,
        settings.ADMIN_PASSWORD,
        role=Role.ADMIN,
    )
    print("Created admin:", acc.id, acc.tai_id)


if __name__ == "__main__":
    main()
