from __future__ import annotations

from fastapi import APIRouter, Depends

from tai_ledger.deps import get_service, require_admin
from tai_ledger.domain import Account
from tai_ledger.schemas import AccountOut, FundIn, ProcessIn, SettledOut, StatsOut, WithdrawalOut
from tai_ledger.service import LedgerService

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=list[AccountOut])
def list_users(admin: Account = Depends(require_admin), svc: LedgerService = Depends(get_service)):
    return [AccountOut.model_validate(a) for a in svc.accounts.list_all()]


@router.get("/withdrawals", response_model=list[WithdrawalOut])
def pending_withdrawals(admin: Account = Depends(require_admin), svc: LedgerService = Depends(get_service)):
    return [WithdrawalOut.model_validate(w) for w in svc.withdrawals.pending()]


@router.post("/withdrawals/{withdrawal_id}/process", response_model=WithdrawalOut)
def process_withdrawal(
    withdrawal_id: int,
    body: ProcessIn,
    admin: Account = Depends(require_admin),
    svc: LedgerService = Depends(get_service),
):
    return WithdrawalOut.model_validate(svc.withdrawals.process(withdrawal_id, admin.id, body.decision))


@router.post("/fund", response_model=AccountOut)
def fund(body: FundIn, admin: Account = Depends(require_admin), svc: LedgerService = Depends(get_service)):
    return AccountOut.model_validate(svc.accounts.fund(body.account_id, body.tai_amount, body.usdt_amount))


@router.get("/stats", response_model=StatsOut)
def stats(admin: Account = Depends(require_admin), svc: LedgerService = Depends(get_service)):
    return StatsOut.model_validate(svc.reports.system_stats())


# ---- Maturity sweep (admin / internal) ----
@router.post("/staking/settle", response_model=list[SettledOut])
def settle_matured(admin: Account = Depends(require_admin), svc: LedgerService = Depends(get_service)):
    """
    Settle every active staking whose term has ended.
    Returns list of {staking_id, account_id, reward} for what was settled.
    """
    return [SettledOut(**row) for row in svc.staking.settle_matured()]
