from __future__ import annotations

from fastapi import APIRouter, Depends

from tai_ledger.deps import current_account, get_service
from tai_ledger.domain import Account
from tai_ledger.schemas import AccountOut, RegisterIn
from tai_ledger.service import LedgerService

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.post("", response_model=AccountOut, status_code=201)
def register(body: RegisterIn, svc: LedgerService = Depends(get_service)):
    acc = svc.accounts.create(body.name, body.email, body.password, referral_code=body.referral_code)
    return AccountOut.model_validate(acc)


@router.get("/me", response_model=AccountOut)
def me(acc: Account = Depends(current_account)):
    return AccountOut.model_validate(acc)


@router.post("/me/verify", response_model=AccountOut)
def verify_email(acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return AccountOut.model_validate(svc.accounts.mark_email_verified(acc.id))
