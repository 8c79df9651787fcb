from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from tai_ledger.domain import (
    Account,
    StakingPosition,
    StakingStatus,
    TransactionRecord,
    TransactionStatus,
    Withdrawal,
    WithdrawalStatus,
)


class LedgerSession(ABC):
    """
    Persistence operations available inside one unit of work.

    Adapters only store and fetch. Ordering of listings is insertion order
    (ascending id); the core applies its own ordering rules on top.
    """

    # ---- accounts ----
    @abstractmethod
    def get_account(self, account_id: int, for_update: bool = False) -> Account | None: ...

    @abstractmethod
    def find_account(
        self,
        *,
        email: str | None = None,
        tai_id: str | None = None,
        referral_code: str | None = None,
    ) -> Account | None: ...

    @abstractmethod
    def add_account(self, account: Account) -> Account: ...

    @abstractmethod
    def save_account(self, account: Account) -> Account: ...

    @abstractmethod
    def list_accounts(self, referred_by: int | None = None) -> list[Account]: ...

    # ---- transaction log ----
    @abstractmethod
    def add_transaction(self, record: TransactionRecord) -> TransactionRecord: ...

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> TransactionRecord | None: ...

    @abstractmethod
    def set_transaction_status(self, transaction_id: int, status: TransactionStatus) -> TransactionRecord: ...

    @abstractmethod
    def list_transactions(self, account_id: int) -> list[TransactionRecord]:
        """Rows owned by the account or naming it as counterparty."""

    # ---- withdrawals ----
    @abstractmethod
    def add_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal: ...

    @abstractmethod
    def get_withdrawal(self, withdrawal_id: int, for_update: bool = False) -> Withdrawal | None: ...

    @abstractmethod
    def save_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal: ...

    @abstractmethod
    def list_withdrawals(
        self,
        account_id: int | None = None,
        status: WithdrawalStatus | None = None,
    ) -> list[Withdrawal]: ...

    # ---- stakings ----
    @abstractmethod
    def add_staking(self, position: StakingPosition) -> StakingPosition: ...

    @abstractmethod
    def get_staking(self, staking_id: int, for_update: bool = False) -> StakingPosition | None: ...

    @abstractmethod
    def save_staking(self, position: StakingPosition) -> StakingPosition: ...

    @abstractmethod
    def list_stakings(
        self,
        account_id: int | None = None,
        status: StakingStatus | None = None,
    ) -> list[StakingPosition]: ...


class LedgerRepository(ABC):
    """Storage backend. Every ledger operation runs inside one unit of work."""

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[LedgerSession]:
        """Commit on normal exit, roll back everything on any exception."""
