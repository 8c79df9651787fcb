from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from tai_ledger.core.config import Settings
from tai_ledger.database import init_db, make_engine, make_session_factory
from tai_ledger.domain import Account, Role
from tai_ledger.service import LedgerService, build_service
from tai_ledger.storage.memory import MemoryLedgerRepository
from tai_ledger.storage.sql import SqlLedgerRepository

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _sql_repository() -> SqlLedgerRepository:
    engine = make_engine("sqlite+pysqlite:///:memory:")
    init_db(engine)
    return SqlLedgerRepository(make_session_factory(engine))


@pytest.fixture(params=["memory", "sql"])
def service(request: pytest.FixtureRequest) -> LedgerService:
    repo = MemoryLedgerRepository() if request.param == "memory" else _sql_repository()
    return build_service(Settings(LEDGER_BACKEND=request.param), repository=repo)


@pytest.fixture
def make_account(service: LedgerService):
    counter = {"n": 0}

    def _make(
        name: str | None = None,
        tai: str | int = 0,
        usdt: str | int = 0,
        role: Role = Role.USER,
        referral_code: str | None = None,
    ) -> Account:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        acc = service.accounts.create(
            name,
            f"{name}@example.com",
            "secret-pass",
            role=role,
            referral_code=referral_code,
            now=T0,
        )
        if Decimal(str(tai)) > 0 or Decimal(str(usdt)) > 0:
            acc = service.accounts.apply_delta(acc.id, tai_delta=tai, usdt_delta=usdt)
        return acc

    return _make


@pytest.fixture
def client(service: LedgerService) -> Iterator[TestClient]:
    from tai_ledger.main import create_app

    app = create_app(service=service, settings=Settings(LOG_LEVEL="WARNING"))
    with TestClient(app) as c:
        yield c
