from __future__ import annotations

from fastapi import APIRouter, Depends

from tai_ledger.deps import current_account, get_service
from tai_ledger.domain import Account
from tai_ledger.schemas import AccountOut, MiningOut, MiningStatusOut
from tai_ledger.service import LedgerService

router = APIRouter(prefix="/api/mining", tags=["mining"])


@router.post("/start", response_model=AccountOut)
def start(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return AccountOut.model_validate(svc.mining.start(acc.id))


@router.post("/stop", response_model=MiningOut)
def stop(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    res = svc.mining.stop(acc.id)
    return MiningOut(reward=res.reward, elapsed_minutes=res.elapsed_minutes, tai_balance=res.account.tai_balance)


@router.post("/claim", response_model=MiningOut)
def claim(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    res = svc.mining.claim(acc.id)
    return MiningOut(reward=res.reward, elapsed_minutes=res.elapsed_minutes, tai_balance=res.account.tai_balance)


@router.get("/status", response_model=MiningStatusOut)
def status(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return MiningStatusOut.model_validate(svc.mining.status(acc.id))
