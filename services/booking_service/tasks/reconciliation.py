"""No-show reconciliation: mark overdue bookings absent.

A registration is overdue when it is still ``registered``, has no check-in,
and its class ended more than the grace period ago. Each row goes through
``booking_ops.mark_absent`` in its own transaction, so a sweep interrupted
halfway leaves consistent state and simply finishes on the next run.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.clock import Clock, get_clock
from libs.common.datetime_utils import studio_date, studio_datetime
from libs.common.errors import DomainError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.booking_service.models import Checkin, Registration, RegistrationStatus
from services.booking_service.policy import ChargePolicy
from services.booking_service.services import booking_ops
from services.schedule_service.models import Occurrence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class SweepResult:
    scanned: int
    marked: int
    skipped: int
    ran_at: datetime


async def find_overdue_registrations(
    db: AsyncSession, *, now: datetime, policy: ChargePolicy
) -> tuple[int, list[uuid.UUID]]:
    """Return ``(candidates, overdue_ids)``.

    The query narrows to bookings dated today or earlier; the exact
    end-plus-grace cutoff is applied on the studio clock afterwards.
    """
    result = await db.execute(
        select(Registration.id, Occurrence.occurrence_date, Occurrence.end_time)
        .join(Occurrence, Registration.occurrence_id == Occurrence.id)
        .outerjoin(Checkin, Checkin.registration_id == Registration.id)
        .where(
            Registration.status == RegistrationStatus.REGISTERED,
            Checkin.id.is_(None),
            Occurrence.occurrence_date <= studio_date(now),
        )
        .order_by(Occurrence.occurrence_date, Occurrence.end_time)
    )
    rows = result.all()
    overdue = [
        registration_id
        for registration_id, day, end_time in rows
        if studio_datetime(day, end_time) + policy.absence_grace < now
    ]
    return len(rows), overdue


async def mark_absent_registrations(
    db: AsyncSession, *, clock: Clock, policy: ChargePolicy
) -> SweepResult:
    """Mark every overdue registration absent. Running it twice is a no-op."""
    now = clock.now()
    scanned, overdue = await find_overdue_registrations(db, now=now, policy=policy)
    # Release the read transaction before per-row writes
    await db.commit()

    marked = 0
    for registration_id in overdue:
        try:
            await booking_ops.mark_absent(
                db, registration_id, clock=clock, policy=policy
            )
            marked += 1
        except DomainError as exc:
            # Checked in or cancelled since the scan
            logger.info(
                "Skipped registration %s during sweep: %s", registration_id, exc.code
            )

    logger.info(
        "Reconciliation sweep at %s: scanned=%d marked=%d skipped=%d",
        now.isoformat(),
        scanned,
        marked,
        scanned - marked,
    )
    return SweepResult(
        scanned=scanned, marked=marked, skipped=scanned - marked, ran_at=now
    )


async def run_reconciliation_sweep(
    clock: Optional[Clock] = None, policy: Optional[ChargePolicy] = None
) -> SweepResult:
    """Entry point for the scheduled job; opens its own session."""
    clock = clock or get_clock()
    policy = policy or ChargePolicy.from_settings()
    result = None
    async for db in get_async_db():
        result = await mark_absent_registrations(db, clock=clock, policy=policy)
    return result
