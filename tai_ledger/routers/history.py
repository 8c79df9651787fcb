from __future__ import annotations

from fastapi import APIRouter, Depends

from tai_ledger.deps import current_account, get_service
from tai_ledger.domain import Account
from tai_ledger.routers.wallet import staking_out
from tai_ledger.schemas import ReferralSummaryOut, StakingOut, TransactionOut, WithdrawalOut
from tai_ledger.service import LedgerService

router = APIRouter(prefix="/api", tags=["history"])


@router.get("/transactions", response_model=list[TransactionOut])
def list_transactions(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return [TransactionOut.model_validate(tx) for tx in svc.transactions.list_for(acc.id)]


@router.get("/withdrawals", response_model=list[WithdrawalOut])
def list_withdrawals(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return [WithdrawalOut.model_validate(w) for w in svc.withdrawals.list_for(acc.id)]


@router.get("/stakings", response_model=list[StakingOut])
def list_stakings(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return [staking_out(p) for p in svc.staking.list_for(acc.id)]


@router.get("/referrals", response_model=ReferralSummaryOut)
def referrals(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return ReferralSummaryOut.model_validate(svc.reports.referral_summary(acc.id))
