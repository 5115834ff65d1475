"""Session ledger: the only code that changes ``Subscription.sessions_remaining``.

Debits are a single conditional write (``... WHERE sessions_remaining >= n``)
so two concurrent bookings can never both spend the last session; the loser
sees ``InsufficientBalance``. Credits are unconditional.

Both operations run inside the caller's transaction and never commit: the
booking state machine commits the balance change together with the status
transition that caused it, or rolls both back.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFound, ValidationFailed
from libs.common.logging import get_logger
from services.booking_service.errors import InsufficientBalance
from services.booking_service.models import (
    LedgerDirection,
    LedgerReason,
    SessionLedgerEntry,
    Subscription,
    SubscriptionStatus,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def active_subscription_for(
    db: AsyncSession, member_id: uuid.UUID
) -> Optional[Subscription]:
    """The member's active subscription, or ``None``.

    When several subscriptions are active, the most recently started wins.
    """
    result = await db.execute(
        select(Subscription)
        .where(
            Subscription.member_id == member_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
        )
        .order_by(Subscription.start_date.desc(), Subscription.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_balance(db: AsyncSession, subscription_id: uuid.UUID) -> int:
    """Current ``sessions_remaining`` read straight from the database."""
    balance = await db.scalar(
        select(Subscription.sessions_remaining).where(
            Subscription.id == subscription_id
        )
    )
    if balance is None:
        raise NotFound("Subscription not found", subscription_id=subscription_id)
    return balance


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def _check_amount(amount: int) -> None:
    if amount <= 0:
        raise ValidationFailed("Session amount must be positive", amount=amount)


async def debit(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    amount: int = 1,
    *,
    reason: LedgerReason,
    registration_id: Optional[uuid.UUID] = None,
) -> int:
    """Take ``amount`` sessions off a subscription. Returns the new balance.

    Raises ``InsufficientBalance`` when fewer than ``amount`` remain.
    """
    _check_amount(amount)

    result = await db.execute(
        update(Subscription)
        .where(
            Subscription.id == subscription_id,
            Subscription.sessions_remaining >= amount,
        )
        .values(
            sessions_remaining=Subscription.sessions_remaining - amount,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        balance = await get_balance(db, subscription_id)
        raise InsufficientBalance(
            subscription_id=subscription_id,
            sessions_remaining=balance,
            required=amount,
        )

    balance_after = await get_balance(db, subscription_id)
    db.add(
        SessionLedgerEntry(
            subscription_id=subscription_id,
            registration_id=registration_id,
            direction=LedgerDirection.DEBIT,
            reason=reason,
            amount=amount,
            balance_before=balance_after + amount,
            balance_after=balance_after,
        )
    )
    logger.info(
        "Debit %d session(s) from subscription %s (%s), balance %d -> %d",
        amount,
        subscription_id,
        reason.value,
        balance_after + amount,
        balance_after,
    )
    return balance_after


async def credit(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    amount: int = 1,
    *,
    reason: LedgerReason,
    registration_id: Optional[uuid.UUID] = None,
) -> int:
    """Give ``amount`` sessions back to a subscription. Returns the new balance.

    Not capped by the plan's original allotment.
    """
    _check_amount(amount)

    result = await db.execute(
        update(Subscription)
        .where(Subscription.id == subscription_id)
        .values(
            sessions_remaining=Subscription.sessions_remaining + amount,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Subscription not found", subscription_id=subscription_id)

    balance_after = await get_balance(db, subscription_id)
    db.add(
        SessionLedgerEntry(
            subscription_id=subscription_id,
            registration_id=registration_id,
            direction=LedgerDirection.CREDIT,
            reason=reason,
            amount=amount,
            balance_before=balance_after - amount,
            balance_after=balance_after,
        )
    )
    logger.info(
        "Credit %d session(s) to subscription %s (%s), balance %d -> %d",
        amount,
        subscription_id,
        reason.value,
        balance_after - amount,
        balance_after,
    )
    return balance_after
