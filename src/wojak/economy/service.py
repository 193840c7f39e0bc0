"""Spending and friend-to-friend currency gifts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.db.models import CurrencyTransaction, Friendship
from wojak.economy.catalog import Currency
from wojak.economy.day_utils import utc_now
from wojak.economy.errors import InvalidGift
from wojak.economy.ledger import (
    LedgerResult,
    account_exists,
    apply_delta,
    get_balance,
    get_or_create_account,
    tx_key,
)
from wojak.moderation.ban_gate import ensure_not_banned, is_banned

logger = logging.getLogger(__name__)

FRIEND_ACCEPTED = "accepted"


@dataclass(frozen=True)
class GiftResult:
    sender: LedgerResult
    recipient_id: str
    currency: Currency
    amount: int

    @property
    def already_applied(self) -> bool:
        return self.sender.already_applied


def spend_key(account_id: str, item_id: str, request_id: str) -> str:
    return f"spend:{account_id}:{item_id}:{request_id}"


async def spend(
    db: AsyncSession,
    account_id: str,
    currency: Currency,
    amount: int,
    item_id: str,
    request_id: str,
    now: datetime | None = None,
) -> LedgerResult:
    """Debit ``amount`` for an item. Raises InsufficientFunds with nothing written."""
    if amount <= 0:
        msg = "amount must be positive"
        raise ValueError(msg)
    now = now or utc_now()
    await get_or_create_account(db, account_id, now)
    return await apply_delta(
        db,
        account_id,
        spend_key(account_id, item_id, request_id),
        {currency: -amount},
        source="purchase",
        source_ref=item_id,
        metadata={"item_id": item_id},
        now=now,
    )


async def are_friends(db: AsyncSession, account_id: str, other_id: str) -> bool:
    result = await db.execute(
        select(Friendship.id).where(
            Friendship.status == FRIEND_ACCEPTED,
            or_(
                and_(Friendship.account_id == account_id, Friendship.friend_id == other_id),
                and_(Friendship.account_id == other_id, Friendship.friend_id == account_id),
            ),
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _find_gift_debit(db: AsyncSession, debit_key: str) -> CurrencyTransaction | None:
    result = await db.execute(
        select(CurrencyTransaction).where(
            CurrencyTransaction.idempotency_key.in_([tx_key(debit_key, c) for c in Currency])
        )
    )
    return result.scalars().first()


async def send_gift(
    db: AsyncSession,
    sender_id: str,
    recipient_id: str,
    currency: Currency,
    amount: int,
    request_id: str,
    message: str | None = None,
    now: datetime | None = None,
) -> GiftResult:
    """Move currency from sender to an accepted friend.

    The debit and credit are two ledger entries keyed
    ``gift:{sender}:{request_id}:out`` and ``...:in`` inside the caller's
    unit of work, so they commit or roll back together. A replayed request
    reports the recipient and amount of the gift originally sent under its key.
    """
    if amount <= 0:
        msg = "amount must be positive"
        raise ValueError(msg)
    now = now or utc_now()
    await ensure_not_banned(db, sender_id)
    await get_or_create_account(db, sender_id, now)

    base_key = f"gift:{sender_id}:{request_id}"
    original = await _find_gift_debit(db, f"{base_key}:out")
    if original is not None:
        logger.info("Idempotent replay of %s", base_key)
        sent = Currency(original.currency)
        balance = await get_balance(db, sender_id)
        replay = LedgerResult(balance=balance, applied={sent: original.amount}, already_applied=True)  # type: ignore[arg-type]
        return GiftResult(
            sender=replay,
            recipient_id=original.source_ref or recipient_id,
            currency=sent,
            amount=-original.amount,
        )

    if recipient_id == sender_id:
        raise InvalidGift("Cannot gift to yourself")
    if not await account_exists(db, recipient_id):
        raise InvalidGift("Recipient not found")
    if await is_banned(db, recipient_id):
        raise InvalidGift("Recipient cannot receive gifts")
    if not await are_friends(db, sender_id, recipient_id):
        raise InvalidGift("You can only gift to friends")

    metadata = {"to": recipient_id, "from": sender_id, "message": message}
    debit = await apply_delta(
        db, sender_id, f"{base_key}:out", {currency: -amount},
        source="gift_sent", source_ref=recipient_id, metadata=metadata, now=now,
    )
    if not debit.already_applied:
        await apply_delta(
            db, recipient_id, f"{base_key}:in", {currency: amount},
            source="gift_received", source_ref=sender_id, metadata=metadata, now=now,
        )
        logger.info("Gift of %d %s from %s to %s", amount, currency.value, sender_id, recipient_id)

    return GiftResult(sender=debit, recipient_id=recipient_id, currency=currency, amount=amount)
