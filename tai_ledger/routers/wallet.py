from __future__ import annotations

from fastapi import APIRouter, Depends

from tai_ledger.core.staking.calculator import expected_return
from tai_ledger.deps import current_account, get_service
from tai_ledger.domain import Account, StakingPosition
from tai_ledger.schemas import (
    BalanceOut,
    ConvertIn,
    ConvertOut,
    StakeIn,
    StakingOut,
    TransferIn,
    TransferOut,
    WithdrawalOut,
    WithdrawIn,
)
from tai_ledger.service import LedgerService

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


def staking_out(pos: StakingPosition) -> StakingOut:
    return StakingOut(
        id=pos.id,
        account_id=pos.account_id,
        amount=pos.amount,
        started_at=pos.started_at,
        end_at=pos.end_at,
        status=pos.status,
        last_reward_at=pos.last_reward_at,
        expected_return=expected_return(pos.amount),
    )


@router.get("/balance", response_model=BalanceOut)
def balance(acc: Account = Depends(current_account)):
    return BalanceOut(tai_id=acc.tai_id, tai_balance=acc.tai_balance, usdt_balance=acc.usdt_balance)


@router.post("/convert", response_model=ConvertOut)
def convert(body: ConvertIn, acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    converted = svc.conversion.convert(acc.id, body.amount, body.from_currency, body.to_currency)
    after = svc.accounts.get(acc.id)
    return ConvertOut(
        amount=body.amount,
        from_currency=body.from_currency,
        to_currency=body.to_currency,
        converted=converted,
        tai_balance=after.tai_balance,
        usdt_balance=after.usdt_balance,
    )


@router.post("/transfer", response_model=TransferOut)
def transfer(body: TransferIn, acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    receipt = svc.transfers.transfer(acc.id, body.recipient_tai_id, body.amount)
    return TransferOut.model_validate(receipt)


@router.post("/withdraw", response_model=WithdrawalOut, status_code=201)
def withdraw(body: WithdrawIn, acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    w = svc.withdrawals.request(acc.id, body.amount, body.currency, body.address)
    return WithdrawalOut.model_validate(w)


@router.post("/stake", response_model=StakingOut, status_code=201)
def stake(body: StakeIn, acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return staking_out(svc.staking.stake(acc.id, body.amount))


@router.post("/stakings/{staking_id}/unstake", response_model=StakingOut)
def unstake(staking_id: int, acc: Account = Depends(current_account), svc: LedgerService = Depends(get_service)):
    return staking_out(svc.staking.unstake(acc.id, staking_id))
