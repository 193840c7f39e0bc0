"""Ledger engine: idempotent balance mutation plus the append-only transaction log.

Every currency change goes through ``apply_delta``:

1. If a transaction already carries ``{idempotency_key}:{currency}``, the
   event was applied before. Return the current balance untouched.
2. Otherwise, inside a SAVEPOINT, run one conditional UPDATE
   (``balance + delta >= 0`` for debits) and append one transaction row per
   non-zero currency delta. A concurrent duplicate loses on the unique
   idempotency index and is reported as already applied.

Balances are never read-modify-written in Python.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.database import upsert
from wojak.db.models import Account, CurrencyTransaction
from wojak.economy.catalog import STARTING_GEMS, STARTING_ORANGES, Currency
from wojak.economy.day_utils import utc_now
from wojak.economy.errors import InsufficientFunds

logger = logging.getLogger(__name__)

# Balance and lifetime column per currency. Exhaustive over Currency.
BALANCE_COLUMNS = {
    Currency.ORANGES: (Account.oranges, Account.lifetime_oranges),
    Currency.GEMS: (Account.gems, Account.lifetime_gems),
}


@dataclass(frozen=True)
class Balance:
    oranges: int
    gems: int

    def of(self, currency: Currency) -> int:
        return self.oranges if currency is Currency.ORANGES else self.gems

    def as_dict(self) -> dict[str, int]:
        return {"oranges": self.oranges, "gems": self.gems}


@dataclass
class LedgerResult:
    balance: Balance
    applied: dict[Currency, int] = field(default_factory=dict)
    already_applied: bool = False


@dataclass(frozen=True)
class ReconciliationLine:
    currency: Currency
    balance: int
    ledger_sum: int

    @property
    def drift(self) -> int:
        return self.balance - self.ledger_sum


def tx_key(idempotency_key: str, currency: Currency) -> str:
    return f"{idempotency_key}:{currency.value}"


async def get_or_create_account(
    db: AsyncSession,
    account_id: str,
    now: datetime | None = None,
) -> Account:
    """Return the account, creating it with the starting balance on first access.

    The starting balance is logged as an ``account_creation`` transaction so
    the ledger reconciles from the first row.
    """
    now = now or utc_now()
    stmt = (
        upsert(db, Account)
        .values(
            id=account_id,
            oranges=STARTING_ORANGES,
            gems=STARTING_GEMS,
            lifetime_oranges=STARTING_ORANGES,
            lifetime_gems=STARTING_GEMS,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["id"])
        .returning(Account.id)
    )
    inserted = (await db.execute(stmt)).scalar_one_or_none()
    if inserted is not None:
        starting = {Currency.ORANGES: STARTING_ORANGES, Currency.GEMS: STARTING_GEMS}
        for currency, amount in starting.items():
            if amount == 0:
                continue
            db.add(CurrencyTransaction(
                account_id=account_id,
                direction="earn",
                currency=currency.value,
                amount=amount,
                balance_after=amount,
                source="account_creation",
                source_ref=account_id,
                tx_metadata={},
                idempotency_key=tx_key(f"init:{account_id}", currency),
                created_at=now,
            ))
        await db.flush()
        logger.info("Created account %s with starting balance", account_id)

    result = await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def account_exists(db: AsyncSession, account_id: str) -> bool:
    result = await db.execute(select(Account.id).where(Account.id == account_id))
    return result.scalar_one_or_none() is not None


async def get_balance(db: AsyncSession, account_id: str) -> Balance | None:
    """Current balance read straight from the store, or None for unknown accounts."""
    result = await db.execute(
        select(Account.oranges, Account.gems).where(Account.id == account_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    return Balance(oranges=row.oranges, gems=row.gems)


async def find_applied(db: AsyncSession, idempotency_key: str) -> dict[Currency, int] | None:
    """Amounts previously applied under this key, per currency, or None if never applied."""
    keys = {tx_key(idempotency_key, c): c for c in Currency}
    result = await db.execute(
        select(CurrencyTransaction.idempotency_key, CurrencyTransaction.amount).where(
            CurrencyTransaction.idempotency_key.in_(list(keys))
        )
    )
    rows = result.all()
    if not rows:
        return None
    return {keys[row.idempotency_key]: row.amount for row in rows}


async def _replay(db: AsyncSession, account_id: str, applied: dict[Currency, int]) -> LedgerResult:
    balance = await get_balance(db, account_id)
    if balance is None:
        msg = f"Unknown account: {account_id}"
        raise LookupError(msg)
    return LedgerResult(balance=balance, applied=applied, already_applied=True)


async def apply_delta(
    db: AsyncSession,
    account_id: str,
    idempotency_key: str,
    deltas: dict[Currency, int],
    source: str,
    source_ref: str | None = None,
    metadata: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> LedgerResult:
    """Apply signed per-currency deltas to an account exactly once per idempotency key.

    Raises InsufficientFunds (with no side effects) if any debit would drive a
    balance below zero. The caller owns the surrounding transaction.
    """
    nonzero = {c: d for c, d in deltas.items() if d != 0}

    previous = await find_applied(db, idempotency_key)
    if previous is not None:
        logger.info("Idempotent replay of %s for %s", idempotency_key, account_id)
        return await _replay(db, account_id, previous)

    if not nonzero:
        balance = await get_balance(db, account_id)
        if balance is None:
            msg = f"Unknown account: {account_id}"
            raise LookupError(msg)
        return LedgerResult(balance=balance)

    now = now or utc_now()
    conditions = [Account.id == account_id]
    values: dict[str, Any] = {"updated_at": now}
    for currency, delta in nonzero.items():
        balance_col, lifetime_col = BALANCE_COLUMNS[currency]
        values[balance_col.key] = balance_col + delta
        if delta > 0:
            values[lifetime_col.key] = lifetime_col + delta
        else:
            conditions.append(balance_col + delta >= 0)

    stmt = (
        update(Account)
        .where(*conditions)
        .values(**values)
        .returning(Account.oranges, Account.gems)
        .execution_options(synchronize_session=False)
    )

    try:
        async with db.begin_nested():
            row = (await db.execute(stmt)).one_or_none()
            if row is None:
                raise await _insufficient(db, account_id, nonzero)
            balance = Balance(oranges=row.oranges, gems=row.gems)

            for currency, delta in nonzero.items():
                db.add(CurrencyTransaction(
                    account_id=account_id,
                    direction="earn" if delta > 0 else "spend",
                    currency=currency.value,
                    amount=delta,
                    balance_after=balance.of(currency),
                    source=source,
                    source_ref=source_ref,
                    tx_metadata=metadata or {},
                    idempotency_key=tx_key(idempotency_key, currency),
                    created_at=now,
                ))
            await db.flush()
    except IntegrityError:
        # Lost the race against a concurrent request carrying the same key.
        logger.info("Concurrent duplicate of %s for %s", idempotency_key, account_id)
        previous = await find_applied(db, idempotency_key)
        return await _replay(db, account_id, previous or {})

    return LedgerResult(balance=balance, applied=nonzero)


async def _insufficient(
    db: AsyncSession,
    account_id: str,
    nonzero: dict[Currency, int],
) -> Exception:
    balance = await get_balance(db, account_id)
    if balance is None:
        return LookupError(f"Unknown account: {account_id}")
    for currency, delta in nonzero.items():
        if balance.of(currency) + delta < 0:
            return InsufficientFunds(currency.value, required=-delta, available=balance.of(currency))
    # Balance moved between the UPDATE and this read.
    currency, delta = next((c, d) for c, d in nonzero.items() if d < 0)
    return InsufficientFunds(currency.value, required=-delta, available=balance.of(currency))


async def list_transactions(
    db: AsyncSession,
    account_id: str,
    currency: Currency | None = None,
    direction: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[CurrencyTransaction], int]:
    """Newest-first page of an account's transactions, plus the unpaged total."""
    filters = [CurrencyTransaction.account_id == account_id]
    if currency is not None:
        filters.append(CurrencyTransaction.currency == currency.value)
    if direction is not None:
        filters.append(CurrencyTransaction.direction == direction)

    total = (
        await db.execute(select(func.count()).select_from(CurrencyTransaction).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(CurrencyTransaction)
        .where(*filters)
        .order_by(CurrencyTransaction.created_at.desc(), CurrencyTransaction.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def reconcile_account(db: AsyncSession, account_id: str) -> list[ReconciliationLine]:
    """Compare each currency balance with the sum of its logged amounts."""
    balance = await get_balance(db, account_id)
    if balance is None:
        return []
    result = await db.execute(
        select(CurrencyTransaction.currency, func.coalesce(func.sum(CurrencyTransaction.amount), 0))
        .where(CurrencyTransaction.account_id == account_id)
        .group_by(CurrencyTransaction.currency)
    )
    sums = {row[0]: int(row[1]) for row in result.all()}
    lines = [
        ReconciliationLine(currency=c, balance=balance.of(c), ledger_sum=sums.get(c.value, 0))
        for c in Currency
    ]
    for line in lines:
        if line.drift:
            logger.error(
                "Ledger drift for %s %s: balance=%d ledger=%d",
                account_id, line.currency.value, line.balance, line.ledger_sum,
            )
    return lines
