"""
Wires the core engines to one repository.

Every public method here is one unit of work: it opens the repository
transaction, calls the core function and lets any LedgerError roll it back.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from tai_ledger.core import conversion, ledger, mining, reports, transactions, transfer, withdrawals
from tai_ledger.core.config import Settings, get_settings
from tai_ledger.core.errors import InvalidOperation
from tai_ledger.core.staking import service as staking
from tai_ledger.database import init_db, make_engine, make_session_factory, normalize_db_url
from tai_ledger.domain import (
    Account,
    Currency,
    Role,
    StakingPosition,
    TransactionRecord,
    Withdrawal,
    WithdrawalStatus,
)
from tai_ledger.storage.base import LedgerRepository
from tai_ledger.storage.memory import MemoryLedgerRepository
from tai_ledger.storage.sql import SqlLedgerRepository

log = logging.getLogger(__name__)


class _Component:
    def __init__(self, repo: LedgerRepository) -> None:
        self.repo = repo


class Accounts(_Component):
    def __init__(self, repo: LedgerRepository, id_attempts: int = 5) -> None:
        super().__init__(repo)
        self.id_attempts = id_attempts

    def create(
        self,
        name: str,
        email: str,
        password: str,
        role: Role | str = Role.USER,
        referral_code: str | None = None,
        now: datetime | None = None,
    ) -> Account:
        with self.repo.unit_of_work() as db:
            return ledger.create_account(
                db,
                name,
                email,
                password,
                role=role,
                referral_code=referral_code,
                id_attempts=self.id_attempts,
                now=now,
            )

    def get(self, account_id: int) -> Account:
        with self.repo.unit_of_work() as db:
            return ledger.get_account(db, account_id)

    def get_by_tai_id(self, tai_id: str) -> Account:
        with self.repo.unit_of_work() as db:
            return ledger.get_by_tai_id(db, tai_id)

    def list_all(self) -> list[Account]:
        with self.repo.unit_of_work() as db:
            return ledger.list_accounts(db)

    def apply_delta(
        self,
        account_id: int,
        tai_delta: Decimal | int | str = 0,
        usdt_delta: Decimal | int | str = 0,
    ) -> Account:
        with self.repo.unit_of_work() as db:
            return ledger.apply_delta(db, account_id, tai_delta, usdt_delta)

    def mark_email_verified(self, account_id: int) -> Account:
        with self.repo.unit_of_work() as db:
            return ledger.mark_email_verified(db, account_id)

    def fund(
        self,
        account_id: int,
        tai_amount: Decimal | int | str = 0,
        usdt_amount: Decimal | int | str = 0,
        now: datetime | None = None,
    ) -> Account:
        with self.repo.unit_of_work() as db:
            return ledger.fund(db, account_id, tai_amount, usdt_amount, now=now)


class Transactions(_Component):
    def record(
        self,
        account_id: int,
        tx_type: str,
        amount: Decimal,
        currency: Currency | str,
        description: str = "",
        counterparty_id: int | None = None,
        now: datetime | None = None,
    ) -> TransactionRecord:
        with self.repo.unit_of_work() as db:
            return transactions.record(
                db,
                account_id,
                tx_type,
                amount,
                currency,
                description=description,
                counterparty_id=counterparty_id,
                now=now,
            )

    def list_for(self, account_id: int) -> list[TransactionRecord]:
        with self.repo.unit_of_work() as db:
            ledger.get_account(db, account_id)
            return transactions.list_for(db, account_id)


class Mining(_Component):
    def start(self, account_id: int, now: datetime | None = None) -> Account:
        with self.repo.unit_of_work() as db:
            return mining.start(db, account_id, now)

    def stop(self, account_id: int, now: datetime | None = None) -> mining.MiningResult:
        with self.repo.unit_of_work() as db:
            return mining.stop(db, account_id, now)

    def claim(self, account_id: int, now: datetime | None = None) -> mining.MiningResult:
        with self.repo.unit_of_work() as db:
            return mining.claim(db, account_id, now)

    def status(self, account_id: int, now: datetime | None = None) -> mining.MiningStatus:
        with self.repo.unit_of_work() as db:
            return mining.status(db, account_id, now)


class Conversion(_Component):
    def convert(
        self,
        account_id: int,
        amount: Decimal | int | str,
        from_currency: Currency | str,
        to_currency: Currency | str,
        now: datetime | None = None,
    ) -> Decimal:
        with self.repo.unit_of_work() as db:
            return conversion.convert(db, account_id, amount, from_currency, to_currency, now=now)


class Transfers(_Component):
    def transfer(
        self,
        sender_id: int,
        recipient_tai_id: str,
        amount: Decimal | int | str,
        now: datetime | None = None,
    ) -> transfer.TransferReceipt:
        with self.repo.unit_of_work() as db:
            return transfer.transfer(db, sender_id, recipient_tai_id, amount, now=now)


class Withdrawals(_Component):
    def request(
        self,
        account_id: int,
        amount: Decimal | int | str,
        currency: Currency | str,
        address: str,
        now: datetime | None = None,
    ) -> Withdrawal:
        with self.repo.unit_of_work() as db:
            return withdrawals.request(db, account_id, amount, currency, address, now=now)

    def process(
        self,
        withdrawal_id: int,
        admin_id: int,
        decision: WithdrawalStatus | str,
        now: datetime | None = None,
    ) -> Withdrawal:
        with self.repo.unit_of_work() as db:
            return withdrawals.process(db, withdrawal_id, admin_id, decision, now=now)

    def pending(self) -> list[Withdrawal]:
        with self.repo.unit_of_work() as db:
            return withdrawals.pending(db)

    def list_for(self, account_id: int) -> list[Withdrawal]:
        with self.repo.unit_of_work() as db:
            return withdrawals.list_for(db, account_id)


class Staking(_Component):
    def stake(self, account_id: int, amount: Decimal | int | str, now: datetime | None = None) -> StakingPosition:
        with self.repo.unit_of_work() as db:
            return staking.stake(db, account_id, amount, now)

    def unstake(self, account_id: int, staking_id: int, now: datetime | None = None) -> StakingPosition:
        with self.repo.unit_of_work() as db:
            return staking.unstake(db, account_id, staking_id, now)

    def settle_matured(self, now: datetime | None = None) -> list[dict]:
        with self.repo.unit_of_work() as db:
            return staking.settle_matured(db, now)

    def list_for(self, account_id: int, now: datetime | None = None) -> list[StakingPosition]:
        with self.repo.unit_of_work() as db:
            return staking.list_for(db, account_id, now)

    def get(self, account_id: int, staking_id: int, now: datetime | None = None) -> StakingPosition:
        with self.repo.unit_of_work() as db:
            return staking.get(db, account_id, staking_id, now)


class Reports(_Component):
    def referral_summary(self, account_id: int) -> reports.ReferralSummary:
        with self.repo.unit_of_work() as db:
            return reports.referral_summary(db, account_id)

    def system_stats(self) -> reports.SystemStats:
        with self.repo.unit_of_work() as db:
            return reports.system_stats(db)


class LedgerService:
    def __init__(self, repo: LedgerRepository, id_attempts: int = 5) -> None:
        self.repo = repo
        self.accounts = Accounts(repo, id_attempts)
        self.transactions = Transactions(repo)
        self.mining = Mining(repo)
        self.conversion = Conversion(repo)
        self.transfers = Transfers(repo)
        self.withdrawals = Withdrawals(repo)
        self.staking = Staking(repo)
        self.reports = Reports(repo)


def build_repository(settings: Settings) -> LedgerRepository:
    backend = (settings.LEDGER_BACKEND or "").strip().lower()
    if backend == "memory":
        return MemoryLedgerRepository()
    if backend == "sql":
        url = normalize_db_url(settings.DATABASE_URL) or "sqlite+pysqlite:///./local.db"
        engine = make_engine(url)
        if url.startswith("sqlite"):
            init_db(engine)
        log.info("sql ledger backend dialect=%s", engine.dialect.name)
        return SqlLedgerRepository(make_session_factory(engine))
    raise InvalidOperation(f"Unsupported ledger backend: {settings.LEDGER_BACKEND}")


def build_service(settings: Settings | None = None, repository: LedgerRepository | None = None) -> LedgerService:
    settings = settings or get_settings()
    repo = repository or build_repository(settings)
    return LedgerService(repo, id_attempts=settings.ID_GENERATION_ATTEMPTS)
