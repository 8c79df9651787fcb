from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from tai_ledger.core.errors import Forbidden, NotFound, Unauthorized
from tai_ledger.domain import Account, Role
from tai_ledger.service import LedgerService


def get_service(request: Request) -> LedgerService:
    return request.app.state.ledger


def current_account(
    x_account_id: Optional[int] = Header(default=None),
    svc: LedgerService = Depends(get_service),
) -> Account:
    """Caller identity comes from X-Account-Id; session issuance lives outside this service."""
    if x_account_id is None:
        raise Unauthorized("Missing X-Account-Id header")
    try:
        return svc.accounts.get(x_account_id)
    except NotFound as e:
        raise Unauthorized("Unknown account") from e


def require_admin(acc: Account = Depends(current_account)) -> Account:
    if acc.role is not Role.ADMIN:
        raise Forbidden("Admin role required")
    return acc
