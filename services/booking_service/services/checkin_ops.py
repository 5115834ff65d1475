"""Front-desk check-in: resolve a scanned QR code and record attendance."""

import uuid
from dataclasses import dataclass
from typing import Optional

from libs.common.clock import Clock
from libs.common.errors import DomainError, InvalidTransition
from libs.common.logging import get_logger
from services.booking_service.errors import (
    AlreadyCheckedIn,
    CodeNotFound,
    InsufficientBalance,
    NoActiveSubscription,
)
from services.booking_service.models import Checkin, Registration, RegistrationStatus
from services.booking_service.policy import ChargePolicy
from services.booking_service.services import booking_ops, ledger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class CheckinResult:
    checkin: Checkin
    registration: Registration
    member_id: uuid.UUID
    sessions_remaining: Optional[int]


async def resolve_code(db: AsyncSession, code: str) -> Registration:
    """Registration behind a scan code. Cancelled bookings never resolve."""
    result = await db.execute(
        select(Registration)
        .where(Registration.qr_code == code)
        .execution_options(populate_existing=True)
    )
    registration = result.scalar_one_or_none()
    if not registration or registration.status == RegistrationStatus.CANCELLED:
        raise CodeNotFound(code=code)
    return registration


async def check_in(
    db: AsyncSession,
    code: str,
    *,
    clock: Clock,
    policy: ChargePolicy,
    notes: Optional[str] = None,
) -> CheckinResult:
    try:
        registration = await resolve_code(db, code)
        member_id = registration.member_id

        if registration.status == RegistrationStatus.ATTENDED:
            raise AlreadyCheckedIn(
                registration_id=registration.id, member_id=member_id
            )
        if registration.status == RegistrationStatus.ABSENT:
            raise InvalidTransition(
                "Registration was already marked absent",
                registration_id=registration.id,
                status=registration.status.value,
            )

        # The balance only matters when the check-in itself spends a session
        if policy.debit_on_attend:
            subscription = await ledger.active_subscription_for(db, member_id)
            if not subscription:
                raise NoActiveSubscription(member_id=member_id)
            balance = await ledger.get_balance(db, subscription.id)
            if balance <= 0:
                raise InsufficientBalance(
                    subscription_id=subscription.id, sessions_remaining=balance
                )
    except DomainError:
        await db.rollback()
        raise

    checkin = await booking_ops.attend(
        db, registration.id, clock=clock, policy=policy, notes=notes
    )

    subscription = await ledger.active_subscription_for(db, member_id)
    sessions_remaining = (
        await ledger.get_balance(db, subscription.id) if subscription else None
    )

    logger.info(
        "Checked in member %s for occurrence %s", member_id, registration.occurrence_id
    )
    return CheckinResult(
        checkin=checkin,
        registration=registration,
        member_id=member_id,
        sessions_remaining=sessions_remaining,
    )
