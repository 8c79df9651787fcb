from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from tai_ledger.core.errors import ConcurrentUpdate, DuplicateIdentity, NotFound
from tai_ledger.domain import (
    Account,
    Currency,
    Role,
    StakingPosition,
    StakingStatus,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
    Withdrawal,
    WithdrawalStatus,
)
from tai_ledger.models import AccountRow, StakingRow, TransactionRow, WithdrawalRow
from tai_ledger.storage.base import LedgerRepository, LedgerSession

_UNIQUE_FIELDS = ("email", "tai_id", "referral_code")


def _account(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        tai_id=row.tai_id,
        referral_code=row.referral_code,
        tai_balance=row.tai_balance,
        usdt_balance=row.usdt_balance,
        referred_by=row.referred_by,
        mining_active=bool(row.mining_active),
        mining_started_at=row.mining_started_at,
        email_verified=bool(row.email_verified),
        created_at=row.created_at,
        version=row.version,
    )


def _transaction(row: TransactionRow) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        account_id=row.account_id,
        type=TransactionType(row.type),
        amount=row.amount,
        currency=Currency(row.currency),
        status=TransactionStatus(row.status),
        description=row.description or "",
        counterparty_id=row.counterparty_id,
        created_at=row.created_at,
    )


def _withdrawal(row: WithdrawalRow) -> Withdrawal:
    return Withdrawal(
        id=row.id,
        account_id=row.account_id,
        amount=row.amount,
        currency=Currency(row.currency),
        address=row.address,
        status=WithdrawalStatus(row.status),
        created_at=row.created_at,
        processed_at=row.processed_at,
        processed_by=row.processed_by,
        transaction_id=row.transaction_id,
    )


def _staking(row: StakingRow) -> StakingPosition:
    return StakingPosition(
        id=row.id,
        account_id=row.account_id,
        amount=row.amount,
        started_at=row.started_at,
        end_at=row.end_at,
        status=StakingStatus(row.status),
        last_reward_at=row.last_reward_at,
    )


def _duplicate_field(err: IntegrityError) -> str:
    text = str(err.orig).lower()
    for fname in _UNIQUE_FIELDS:
        if fname in text:
            return fname
    return "identity"


class SqlLedgerSession(LedgerSession):
    def __init__(self, db: Session) -> None:
        self.db = db

    def _flush_identity(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            raise DuplicateIdentity(_duplicate_field(e)) from e

    # ---- accounts ----
    def _account_row(self, account_id: int, for_update: bool = False) -> AccountRow | None:
        q = select(AccountRow).where(AccountRow.id == account_id)
        if for_update:
            q = q.with_for_update()
        return self.db.execute(q).scalar_one_or_none()

    def get_account(self, account_id: int, for_update: bool = False) -> Account | None:
        row = self._account_row(account_id, for_update)
        return _account(row) if row else None

    def find_account(self, *, email=None, tai_id=None, referral_code=None) -> Account | None:
        conds = []
        if email is not None:
            conds.append(AccountRow.email == email)
        if tai_id is not None:
            conds.append(AccountRow.tai_id == tai_id)
        if referral_code is not None:
            conds.append(AccountRow.referral_code == referral_code)
        if not conds:
            return None
        row = self.db.execute(select(AccountRow).where(or_(*conds)).limit(1)).scalar_one_or_none()
        return _account(row) if row else None

    def add_account(self, account: Account) -> Account:
        row = AccountRow(
            name=account.name,
            email=account.email,
            password_hash=account.password_hash,
            role=account.role.value,
            tai_id=account.tai_id,
            referral_code=account.referral_code,
            tai_balance=account.tai_balance,
            usdt_balance=account.usdt_balance,
            referred_by=account.referred_by,
            mining_active=account.mining_active,
            mining_started_at=account.mining_started_at,
            email_verified=account.email_verified,
            created_at=account.created_at,
            version=1,
        )
        # savepoint: a unique collision undoes this insert only, the unit of work stays usable
        with self.db.begin_nested():
            self.db.add(row)
            self._flush_identity()
        return _account(row)

    def save_account(self, account: Account) -> Account:
        row = self._account_row(account.id, for_update=True)
        if row is None:
            raise NotFound(f"Account {account.id} not found")
        if row.version != account.version:
            raise ConcurrentUpdate(f"Account {account.id} was modified concurrently")

        row.name = account.name
        row.email = account.email
        row.password_hash = account.password_hash
        row.role = account.role.value
        row.tai_balance = account.tai_balance
        row.usdt_balance = account.usdt_balance
        row.referred_by = account.referred_by
        row.mining_active = account.mining_active
        row.mining_started_at = account.mining_started_at
        row.email_verified = account.email_verified
        row.version += 1
        self._flush_identity()
        return _account(row)

    def list_accounts(self, referred_by: int | None = None) -> list[Account]:
        q = select(AccountRow).order_by(AccountRow.id.asc())
        if referred_by is not None:
            q = q.where(AccountRow.referred_by == referred_by)
        return [_account(r) for r in self.db.execute(q).scalars().all()]

    # ---- transaction log ----
    def add_transaction(self, record: TransactionRecord) -> TransactionRecord:
        row = TransactionRow(
            account_id=record.account_id,
            type=record.type.value,
            amount=record.amount,
            currency=record.currency.value,
            status=record.status.value,
            description=record.description,
            counterparty_id=record.counterparty_id,
            created_at=record.created_at,
        )
        self.db.add(row)
        self.db.flush()
        return _transaction(row)

    def get_transaction(self, transaction_id: int) -> TransactionRecord | None:
        row = self.db.get(TransactionRow, transaction_id)
        return _transaction(row) if row else None

    def set_transaction_status(self, transaction_id: int, status: TransactionStatus) -> TransactionRecord:
        row = self.db.get(TransactionRow, transaction_id)
        if row is None:
            raise NotFound(f"Transaction {transaction_id} not found")
        row.status = status.value
        self.db.flush()
        return _transaction(row)

    def list_transactions(self, account_id: int) -> list[TransactionRecord]:
        q = (
            select(TransactionRow)
            .where(or_(TransactionRow.account_id == account_id, TransactionRow.counterparty_id == account_id))
            .order_by(TransactionRow.id.asc())
        )
        return [_transaction(r) for r in self.db.execute(q).scalars().all()]

    # ---- withdrawals ----
    def add_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        row = WithdrawalRow(
            account_id=withdrawal.account_id,
            amount=withdrawal.amount,
            currency=withdrawal.currency.value,
            address=withdrawal.address,
            status=withdrawal.status.value,
            created_at=withdrawal.created_at,
            processed_at=withdrawal.processed_at,
            processed_by=withdrawal.processed_by,
            transaction_id=withdrawal.transaction_id,
        )
        self.db.add(row)
        self.db.flush()
        return _withdrawal(row)

    def get_withdrawal(self, withdrawal_id: int, for_update: bool = False) -> Withdrawal | None:
        q = select(WithdrawalRow).where(WithdrawalRow.id == withdrawal_id)
        if for_update:
            q = q.with_for_update()
        row = self.db.execute(q).scalar_one_or_none()
        return _withdrawal(row) if row else None

    def save_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        row = self.db.get(WithdrawalRow, withdrawal.id)
        if row is None:
            raise NotFound(f"Withdrawal {withdrawal.id} not found")
        row.status = withdrawal.status.value
        row.processed_at = withdrawal.processed_at
        row.processed_by = withdrawal.processed_by
        row.transaction_id = withdrawal.transaction_id
        self.db.flush()
        return _withdrawal(row)

    def list_withdrawals(self, account_id=None, status: WithdrawalStatus | None = None) -> list[Withdrawal]:
        q = select(WithdrawalRow).order_by(WithdrawalRow.id.asc())
        if account_id is not None:
            q = q.where(WithdrawalRow.account_id == account_id)
        if status is not None:
            q = q.where(WithdrawalRow.status == status.value)
        return [_withdrawal(r) for r in self.db.execute(q).scalars().all()]

    # ---- stakings ----
    def add_staking(self, position: StakingPosition) -> StakingPosition:
        row = StakingRow(
            account_id=position.account_id,
            amount=position.amount,
            started_at=position.started_at,
            end_at=position.end_at,
            status=position.status.value,
            last_reward_at=position.last_reward_at,
        )
        self.db.add(row)
        self.db.flush()
        return _staking(row)

    def get_staking(self, staking_id: int, for_update: bool = False) -> StakingPosition | None:
        q = select(StakingRow).where(StakingRow.id == staking_id)
        if for_update:
            q = q.with_for_update()
        row = self.db.execute(q).scalar_one_or_none()
        return _staking(row) if row else None

    def save_staking(self, position: StakingPosition) -> StakingPosition:
        row = self.db.get(StakingRow, position.id)
        if row is None:
            raise NotFound(f"Staking {position.id} not found")
        row.status = position.status.value
        row.last_reward_at = position.last_reward_at
        self.db.flush()
        return _staking(row)

    def list_stakings(self, account_id=None, status: StakingStatus | None = None) -> list[StakingPosition]:
        q = select(StakingRow).order_by(StakingRow.id.asc())
        if account_id is not None:
            q = q.where(StakingRow.account_id == account_id)
        if status is not None:
            q = q.where(StakingRow.status == status.value)
        return [_staking(r) for r in self.db.execute(q).scalars().all()]


class SqlLedgerRepository(LedgerRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def unit_of_work(self) -> Iterator[LedgerSession]:
        db = self._session_factory()
        try:
            yield SqlLedgerSession(db)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
