from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Iterator

from tai_ledger.core.errors import ConcurrentUpdate, DuplicateIdentity, NotFound
from tai_ledger.domain import (
    Account,
    StakingPosition,
    StakingStatus,
    TransactionRecord,
    TransactionStatus,
    Withdrawal,
    WithdrawalStatus,
)
from tai_ledger.storage.base import LedgerRepository, LedgerSession

log = logging.getLogger(__name__)


@dataclass
class _Tables:
    accounts: dict[int, Account] = field(default_factory=dict)
    transactions: dict[int, TransactionRecord] = field(default_factory=dict)
    withdrawals: dict[int, Withdrawal] = field(default_factory=dict)
    stakings: dict[int, StakingPosition] = field(default_factory=dict)
    next_ids: dict[str, int] = field(
        default_factory=lambda: {"accounts": 1, "transactions": 1, "withdrawals": 1, "stakings": 1}
    )

    def snapshot(self) -> "_Tables":
        # Stored objects are never mutated in place, so shallow copies are enough.
        return _Tables(
            accounts=dict(self.accounts),
            transactions=dict(self.transactions),
            withdrawals=dict(self.withdrawals),
            stakings=dict(self.stakings),
            next_ids=dict(self.next_ids),
        )

    def restore(self, other: "_Tables") -> None:
        self.accounts = other.accounts
        self.transactions = other.transactions
        self.withdrawals = other.withdrawals
        self.stakings = other.stakings
        self.next_ids = other.next_ids

    def take_id(self, table: str) -> int:
        value = self.next_ids[table]
        self.next_ids[table] = value + 1
        return value


class MemoryLedgerSession(LedgerSession):
    def __init__(self, tables: _Tables) -> None:
        self._t = tables

    # ---- accounts ----
    def get_account(self, account_id: int, for_update: bool = False) -> Account | None:
        acc = self._t.accounts.get(account_id)
        return replace(acc) if acc else None

    def find_account(self, *, email=None, tai_id=None, referral_code=None) -> Account | None:
        for acc in self._t.accounts.values():
            if email is not None and acc.email == email:
                return replace(acc)
            if tai_id is not None and acc.tai_id == tai_id:
                return replace(acc)
            if referral_code is not None and acc.referral_code == referral_code:
                return replace(acc)
        return None

    def _check_unique(self, account: Account) -> None:
        for other in self._t.accounts.values():
            if other.id == account.id:
                continue
            for fname in ("email", "tai_id", "referral_code"):
                if getattr(other, fname) == getattr(account, fname):
                    raise DuplicateIdentity(fname)

    def add_account(self, account: Account) -> Account:
        self._check_unique(account)
        stored = replace(account, id=self._t.take_id("accounts"), version=1)
        self._t.accounts[stored.id] = stored
        return replace(stored)

    def save_account(self, account: Account) -> Account:
        current = self._t.accounts.get(account.id)
        if current is None:
            raise NotFound(f"Account {account.id} not found")
        if current.version != account.version:
            raise ConcurrentUpdate(f"Account {account.id} was modified concurrently")
        self._check_unique(account)
        stored = replace(account, version=account.version + 1)
        self._t.accounts[stored.id] = stored
        return replace(stored)

    def list_accounts(self, referred_by: int | None = None) -> list[Account]:
        rows = sorted(self._t.accounts.values(), key=lambda a: a.id)
        if referred_by is not None:
            rows = [a for a in rows if a.referred_by == referred_by]
        return [replace(a) for a in rows]

    # ---- transaction log ----
    def add_transaction(self, record: TransactionRecord) -> TransactionRecord:
        stored = replace(record, id=self._t.take_id("transactions"))
        self._t.transactions[stored.id] = stored
        return stored

    def get_transaction(self, transaction_id: int) -> TransactionRecord | None:
        return self._t.transactions.get(transaction_id)

    def set_transaction_status(self, transaction_id: int, status: TransactionStatus) -> TransactionRecord:
        current = self._t.transactions.get(transaction_id)
        if current is None:
            raise NotFound(f"Transaction {transaction_id} not found")
        stored = replace(current, status=status)
        self._t.transactions[transaction_id] = stored
        return stored

    def list_transactions(self, account_id: int) -> list[TransactionRecord]:
        return [
            tx
            for _, tx in sorted(self._t.transactions.items())
            if tx.account_id == account_id or tx.counterparty_id == account_id
        ]

    # ---- withdrawals ----
    def add_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        stored = replace(withdrawal, id=self._t.take_id("withdrawals"))
        self._t.withdrawals[stored.id] = stored
        return replace(stored)

    def get_withdrawal(self, withdrawal_id: int, for_update: bool = False) -> Withdrawal | None:
        w = self._t.withdrawals.get(withdrawal_id)
        return replace(w) if w else None

    def save_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        if withdrawal.id not in self._t.withdrawals:
            raise NotFound(f"Withdrawal {withdrawal.id} not found")
        stored = replace(withdrawal)
        self._t.withdrawals[stored.id] = stored
        return replace(stored)

    def list_withdrawals(self, account_id=None, status: WithdrawalStatus | None = None) -> list[Withdrawal]:
        out = []
        for _, w in sorted(self._t.withdrawals.items()):
            if account_id is not None and w.account_id != account_id:
                continue
            if status is not None and w.status != status:
                continue
            out.append(replace(w))
        return out

    # ---- stakings ----
    def add_staking(self, position: StakingPosition) -> StakingPosition:
        stored = replace(position, id=self._t.take_id("stakings"))
        self._t.stakings[stored.id] = stored
        return replace(stored)

    def get_staking(self, staking_id: int, for_update: bool = False) -> StakingPosition | None:
        pos = self._t.stakings.get(staking_id)
        return replace(pos) if pos else None

    def save_staking(self, position: StakingPosition) -> StakingPosition:
        if position.id not in self._t.stakings:
            raise NotFound(f"Staking {position.id} not found")
        stored = replace(position)
        self._t.stakings[stored.id] = stored
        return replace(stored)

    def list_stakings(self, account_id=None, status: StakingStatus | None = None) -> list[StakingPosition]:
        out = []
        for _, pos in sorted(self._t.stakings.items()):
            if account_id is not None and pos.account_id != account_id:
                continue
            if status is not None and pos.status != status:
                continue
            out.append(replace(pos))
        return out


class MemoryLedgerRepository(LedgerRepository):
    """
    Map-backed storage for tests and local runs.

    A single re-entrant lock serializes units of work (one writer at a time),
    and a snapshot taken on entry is restored if the unit of work raises.
    """

    def __init__(self) -> None:
        self._tables = _Tables()
        self._lock = threading.RLock()

    @contextmanager
    def unit_of_work(self) -> Iterator[LedgerSession]:
        with self._lock:
            before = self._tables.snapshot()
            try:
                yield MemoryLedgerSession(self._tables)
            except Exception:
                self._tables.restore(before)
                log.debug("memory unit of work rolled back")
                raise
