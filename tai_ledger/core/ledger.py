from __future__ import annotations

import logging
import secrets
import string
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from passlib.context import CryptContext

from tai_ledger.core import transactions
from tai_ledger.core.amounts import AMOUNT_CONTEXT, to_amount
from tai_ledger.core.constants import (
    IDENTITY_SUFFIX_LENGTH,
    MAX_AMOUNT,
    REFERRAL_BONUS_TAI,
    REFERRAL_CODE_PREFIX,
    TAI_ID_PREFIX,
    ZERO,
)
from tai_ledger.core.errors import DuplicateIdentity, InsufficientFunds, InvalidOperation, NotFound
from tai_ledger.domain import Account, Currency, Role, TransactionType, utcnow
from tai_ledger.storage.base import LedgerSession

log = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

_ALPHABET = string.ascii_uppercase + string.digits


def hash_password(raw: str) -> str:
    return pwd_context.hash(raw)


def _identity(prefix: str) -> str:
    return prefix + "".join(secrets.choice(_ALPHABET) for _ in range(IDENTITY_SUFFIX_LENGTH))


def get_account(db: LedgerSession, account_id: int, for_update: bool = False) -> Account:
    acc = db.get_account(int(account_id), for_update=for_update)
    if acc is None:
        raise NotFound(f"Account {account_id} not found")
    return acc


def apply_delta(
    db: LedgerSession,
    account_id: int,
    tai_delta: Decimal | int | str = ZERO,
    usdt_delta: Decimal | int | str = ZERO,
) -> Account:
    """
    The only write path for balances.

    Reads the account locked for update, rejects the whole change if either
    resulting balance would be negative, otherwise persists both legs at once.
    """
    tai_delta = to_amount(tai_delta, "TAI delta")
    usdt_delta = to_amount(usdt_delta, "USDT delta")

    acc = get_account(db, account_id, for_update=True)
    new_tai = AMOUNT_CONTEXT.add(acc.tai_balance, tai_delta)
    new_usdt = AMOUNT_CONTEXT.add(acc.usdt_balance, usdt_delta)

    if new_tai < 0:
        raise InsufficientFunds(Currency.TAI.value, acc.tai_balance, tai_delta.copy_negate())
    if new_usdt < 0:
        raise InsufficientFunds(Currency.USDT.value, acc.usdt_balance, usdt_delta.copy_negate())
    if max(new_tai, new_usdt) >= MAX_AMOUNT:
        raise InvalidOperation(f"Account {acc.id} balance would exceed {MAX_AMOUNT:f}")

    acc.tai_balance = new_tai
    acc.usdt_balance = new_usdt
    return db.save_account(acc)


def _insert_with_fresh_identity(db: LedgerSession, account: Account, attempts: int) -> Account:
    """
    Insert `account` under a newly drawn tai id and referral code.

    Draws again when either value is taken, whether the lookup sees it first
    or the store's unique constraint rejects the insert. Gives up with
    InvalidOperation after `attempts` draws.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        candidate = replace(
            account,
            tai_id=_identity(TAI_ID_PREFIX),
            referral_code=_identity(REFERRAL_CODE_PREFIX),
        )
        if db.find_account(tai_id=candidate.tai_id) is None and (
            db.find_account(referral_code=candidate.referral_code) is None
        ):
            try:
                return db.add_account(candidate)
            except DuplicateIdentity as e:
                if e.field == "email":
                    raise InvalidOperation("Email already registered") from e
                log.warning("identity insert collided on %s (attempt %s/%s)", e.field, attempt, attempts)
                continue
        log.warning(
            "generated identity taken: %s / %s (attempt %s/%s)",
            candidate.tai_id,
            candidate.referral_code,
            attempt,
            attempts,
        )
    raise InvalidOperation(f"Could not generate a unique account identity after {attempts} attempts")


def create_account(
    db: LedgerSession,
    name: str,
    email: str,
    password: str,
    role: Role | str = Role.USER,
    referral_code: str | None = None,
    id_attempts: int = 5,
    now: datetime | None = None,
) -> Account:
    now = now or utcnow()
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise InvalidOperation("Name is required")
    if not email:
        raise InvalidOperation("Email is required")
    if not password:
        raise InvalidOperation("Password is required")
    if db.find_account(email=email) is not None:
        raise InvalidOperation("Email already registered")

    referrer = None
    code = (referral_code or "").strip().upper()
    if code:
        referrer = db.find_account(referral_code=code)
        if referrer is None:
            log.warning("unknown referral code ignored: %s", code)

    acc = _insert_with_fresh_identity(
        db,
        Account(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=Role.parse(role),
            tai_id="",
            referral_code="",
            referred_by=referrer.id if referrer else None,
            created_at=now,
        ),
        id_attempts,
    )

    if referrer is not None:
        apply_delta(db, referrer.id, tai_delta=REFERRAL_BONUS_TAI)
        transactions.record(
            db,
            referrer.id,
            TransactionType.REFERRAL_BONUS,
            REFERRAL_BONUS_TAI,
            Currency.TAI,
            description=f"Referral bonus for user {acc.name}",
            now=now,
        )
        log.info("referral bonus credited referrer=%s new_account=%s", referrer.id, acc.id)

    log.info("account created id=%s tai_id=%s", acc.id, acc.tai_id)
    return acc


def get_by_tai_id(db: LedgerSession, tai_id: str) -> Account:
    acc = db.find_account(tai_id=(tai_id or "").strip().upper())
    if acc is None:
        raise NotFound(f"Account {tai_id!r} not found")
    return acc


def list_accounts(db: LedgerSession) -> list[Account]:
    return sorted(db.list_accounts(), key=lambda a: (a.created_at, a.id), reverse=True)


def mark_email_verified(db: LedgerSession, account_id: int) -> Account:
    acc = get_account(db, account_id, for_update=True)
    if acc.email_verified:
        return acc
    acc.email_verified = True
    return db.save_account(acc)


def fund(
    db: LedgerSession,
    account_id: int,
    tai_amount: Decimal | int | str = ZERO,
    usdt_amount: Decimal | int | str = ZERO,
    now: datetime | None = None,
) -> Account:
    """Admin deposit: credits one or both currencies, one deposit entry per currency."""
    tai_amount = to_amount(tai_amount, "TAI amount")
    usdt_amount = to_amount(usdt_amount, "USDT amount")
    if tai_amount < 0 or usdt_amount < 0:
        raise InvalidOperation("Funding amounts must be >= 0")
    if tai_amount == 0 and usdt_amount == 0:
        raise InvalidOperation("Nothing to fund")

    acc = apply_delta(db, account_id, tai_delta=tai_amount, usdt_delta=usdt_amount)

    for currency, amount in ((Currency.TAI, tai_amount), (Currency.USDT, usdt_amount)):
        if amount > 0:
            transactions.record(
                db,
                acc.id,
                TransactionType.DEPOSIT,
                amount,
                currency,
                description=f"Admin funded {currency.value} balance",
                now=now,
            )

    log.info("account funded id=%s tai=%s usdt=%s", acc.id, tai_amount, usdt_amount)
    return acc
