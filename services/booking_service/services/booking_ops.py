"""Booking state machine: book, cancel, attend, mark absent.

Every transition is one transaction. Seat claims, balance debits and status
changes are conditional writes, so when two requests race the loser gets a
typed error (``OccurrenceFull``, ``InsufficientBalance``, ``InvalidTransition``)
instead of overbooking or a negative balance. On any failure the session is
rolled back before the error propagates.

    registered --cancel--> cancelled
    registered --attend--> attended
    registered --sweep---> absent
"""

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from libs.common.clock import Clock
from libs.common.errors import (
    DomainError,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.booking_service.errors import (
    AbsenceNotDue,
    AlreadyCheckedIn,
    AlreadyRegistered,
    AlreadyStarted,
    InsufficientBalance,
    NoActiveSubscription,
    NotOwner,
    OccurrenceFull,
    ScheduleConflict,
)
from services.booking_service.models import (
    Checkin,
    LedgerReason,
    MemberRef,
    Registration,
    RegistrationStatus,
)
from services.booking_service.policy import ChargePolicy
from services.booking_service.services import ledger
from services.schedule_service.models import Occurrence
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class CancellationResult:
    registration: Registration
    refunded: bool
    sessions_remaining: Optional[int]


@dataclass
class BulkBookingResult:
    registered: list[Registration] = field(default_factory=list)
    already_registered: list[uuid.UUID] = field(default_factory=list)
    failed: list[tuple[uuid.UUID, DomainError]] = field(default_factory=list)


def generate_scan_code() -> str:
    """Opaque, unguessable code printed as the registration's QR code."""
    return secrets.token_urlsafe(16)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_registration(
    db: AsyncSession, registration_id: uuid.UUID
) -> Registration:
    result = await db.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    registration = result.scalar_one_or_none()
    if not registration:
        raise NotFound("Registration not found", registration_id=registration_id)
    return registration


async def get_occurrence(db: AsyncSession, occurrence_id: uuid.UUID) -> Occurrence:
    result = await db.execute(
        select(Occurrence)
        .where(Occurrence.id == occurrence_id)
        .execution_options(populate_existing=True)
    )
    occurrence = result.scalar_one_or_none()
    if not occurrence:
        raise NotFound("Occurrence not found", occurrence_id=occurrence_id)
    return occurrence


async def get_checkin(
    db: AsyncSession, registration_id: uuid.UUID
) -> Optional[Checkin]:
    result = await db.execute(
        select(Checkin).where(Checkin.registration_id == registration_id)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def _ensure_registered(registration: Registration) -> None:
    if registration.status != RegistrationStatus.REGISTERED:
        raise InvalidTransition(
            registration_id=registration.id, status=registration.status.value
        )


async def _ensure_not_checked_in(db: AsyncSession, registration: Registration) -> None:
    if await get_checkin(db, registration.id):
        raise AlreadyCheckedIn(
            registration_id=registration.id, member_id=registration.member_id
        )


async def _ensure_not_registered(
    db: AsyncSession, member_id: uuid.UUID, occurrence_id: uuid.UUID
) -> None:
    existing = await db.scalar(
        select(Registration.id).where(
            Registration.member_id == member_id,
            Registration.occurrence_id == occurrence_id,
            Registration.status == RegistrationStatus.REGISTERED,
        )
    )
    if existing:
        raise AlreadyRegistered(
            occurrence_id=occurrence_id, registration_id=existing
        )


async def _ensure_no_overlap(
    db: AsyncSession, member_id: uuid.UUID, occurrence: Occurrence
) -> None:
    """Refuse a booking whose time range overlaps another live booking that day."""
    conflicting = await db.scalar(
        select(Registration.id)
        .join(Occurrence, Registration.occurrence_id == Occurrence.id)
        .where(
            Registration.member_id == member_id,
            Registration.status == RegistrationStatus.REGISTERED,
            Occurrence.id != occurrence.id,
            Occurrence.occurrence_date == occurrence.occurrence_date,
            Occurrence.start_time < occurrence.end_time,
            Occurrence.end_time > occurrence.start_time,
        )
        .limit(1)
    )
    if conflicting:
        raise ScheduleConflict(
            occurrence_id=occurrence.id, conflicting_registration_id=conflicting
        )


# ---------------------------------------------------------------------------
# Conditional writes
# ---------------------------------------------------------------------------


async def _claim_seat(db: AsyncSession, occurrence: Occurrence) -> None:
    result = await db.execute(
        update(Occurrence)
        .where(
            Occurrence.id == occurrence.id,
            Occurrence.participant_count < Occurrence.capacity,
        )
        .values(participant_count=Occurrence.participant_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise OccurrenceFull(occurrence_id=occurrence.id, capacity=occurrence.capacity)


async def _release_seat(db: AsyncSession, occurrence_id: uuid.UUID) -> None:
    await db.execute(
        update(Occurrence)
        .where(Occurrence.id == occurrence_id, Occurrence.participant_count > 0)
        .values(participant_count=Occurrence.participant_count - 1)
        .execution_options(synchronize_session=False)
    )


async def _transition(
    db: AsyncSession,
    registration: Registration,
    target: RegistrationStatus,
    now: datetime,
) -> None:
    """Move a ``registered`` row to ``target``; a lost race is an invalid transition."""
    result = await db.execute(
        update(Registration)
        .where(
            Registration.id == registration.id,
            Registration.status == RegistrationStatus.REGISTERED,
        )
        .values(status=target, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidTransition(registration_id=registration.id, target=target.value)


async def _charge_subscription_id(
    db: AsyncSession, registration: Registration
) -> Optional[uuid.UUID]:
    """Subscription a refund or extra debit applies to.

    The member's current active subscription, falling back to the one debited
    when the seat was booked.
    """
    subscription = await ledger.active_subscription_for(db, registration.member_id)
    if subscription:
        return subscription.id
    return registration.subscription_id


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def book(
    db: AsyncSession,
    member_id: uuid.UUID,
    occurrence_id: uuid.UUID,
    *,
    clock: Clock,
    skip_overlap_check: bool = False,
) -> Registration:
    """Reserve a seat on an upcoming occurrence and debit one session.

    ``skip_overlap_check`` books even when the member already holds an
    overlapping booking that day.
    """
    now = clock.now()
    try:
        occurrence = await get_occurrence(db, occurrence_id)
        if not occurrence.is_active:
            raise NotFound("Occurrence not found", occurrence_id=occurrence_id)
        if now >= occurrence.starts_at:
            raise AlreadyStarted(
                occurrence_id=occurrence_id, starts_at=occurrence.starts_at
            )

        await _ensure_not_registered(db, member_id, occurrence_id)
        if not skip_overlap_check:
            await _ensure_no_overlap(db, member_id, occurrence)

        subscription = await ledger.active_subscription_for(db, member_id)
        if not subscription:
            raise NoActiveSubscription(member_id=member_id)
        balance = await ledger.get_balance(db, subscription.id)
        if balance <= 0:
            raise InsufficientBalance(
                subscription_id=subscription.id, sessions_remaining=balance
            )

        await _claim_seat(db, occurrence)

        registration = Registration(
            id=uuid.uuid4(),
            member_id=member_id,
            occurrence_id=occurrence_id,
            subscription_id=subscription.id,
            qr_code=generate_scan_code(),
            status=RegistrationStatus.REGISTERED,
            registered_at=now,
        )
        db.add(registration)
        await db.flush()

        balance = await ledger.debit(
            db,
            subscription.id,
            1,
            reason=LedgerReason.BOOKING,
            registration_id=registration.id,
        )
        await db.commit()
    except DomainError:
        await db.rollback()
        raise
    except IntegrityError:
        # Concurrent duplicate booking caught by the partial unique index
        await db.rollback()
        raise AlreadyRegistered(occurrence_id=occurrence_id)

    await db.refresh(registration)
    logger.info(
        "Member %s booked occurrence %s (registration %s, %d sessions left)",
        member_id,
        occurrence_id,
        registration.id,
        balance,
    )
    return registration


async def bulk_book(
    db: AsyncSession,
    occurrence_id: uuid.UUID,
    member_ids: list[uuid.UUID],
    *,
    clock: Clock,
    skip_overlap_check: bool = False,
) -> BulkBookingResult:
    """Book several members onto one occurrence on their behalf.

    The whole request is refused up front when a member is unknown or the
    class lacks seats for everyone not yet booked. Each member is then booked
    through ``book`` in its own transaction; per-member refusals (no
    subscription, no sessions left, schedule conflict) are collected rather
    than aborting the batch.
    """
    member_ids = list(dict.fromkeys(member_ids))
    try:
        if not member_ids:
            raise ValidationFailed("At least one member is required")
        occurrence = await get_occurrence(db, occurrence_id)
        if not occurrence.is_active:
            raise NotFound("Occurrence not found", occurrence_id=occurrence_id)

        known = set(
            (
                await db.scalars(
                    select(MemberRef.id).where(MemberRef.id.in_(member_ids))
                )
            ).all()
        )
        missing = [member_id for member_id in member_ids if member_id not in known]
        if missing:
            raise NotFound("Some members were not found", member_ids=missing)

        booked = set(
            (
                await db.scalars(
                    select(Registration.member_id).where(
                        Registration.occurrence_id == occurrence_id,
                        Registration.member_id.in_(member_ids),
                        Registration.status == RegistrationStatus.REGISTERED,
                    )
                )
            ).all()
        )
        pending = [member_id for member_id in member_ids if member_id not in booked]
        seats_left = occurrence.capacity - occurrence.participant_count
        if len(pending) > seats_left:
            raise OccurrenceFull(
                occurrence_id=occurrence_id,
                capacity=occurrence.capacity,
                seats_left=seats_left,
                requested=len(pending),
            )
        await db.commit()
    except DomainError:
        await db.rollback()
        raise

    result = BulkBookingResult(
        already_registered=[m for m in member_ids if m in booked]
    )
    for member_id in pending:
        try:
            registration = await book(
                db,
                member_id,
                occurrence_id,
                clock=clock,
                skip_overlap_check=skip_overlap_check,
            )
        except AlreadyRegistered:
            result.already_registered.append(member_id)
        except DomainError as exc:
            logger.info(
                "Bulk booking skipped member %s on occurrence %s: %s",
                member_id,
                occurrence_id,
                exc.code,
            )
            result.failed.append((member_id, exc))
        else:
            result.registered.append(registration)

    # A failed booking rolls back and expires everything the session holds
    for registration in result.registered:
        await db.refresh(registration)

    logger.info(
        "Bulk booking on occurrence %s: %d booked, %d already booked, %d refused",
        occurrence_id,
        len(result.registered),
        len(result.already_registered),
        len(result.failed),
    )
    return result


async def cancel(
    db: AsyncSession,
    member_id: Optional[uuid.UUID],
    registration_id: uuid.UUID,
    *,
    clock: Clock,
    policy: ChargePolicy,
    refund_override: Optional[bool] = None,
) -> CancellationResult:
    """Cancel a booking before the class starts.

    The session is refunded when the cancellation happens at least
    ``policy.refund_window`` before the start; later cancellations forfeit it.

    Staff cancel with ``member_id=None``, which skips the ownership check, and
    may pass ``refund_override`` to force or deny the refund whatever the
    window says.
    """
    now = clock.now()
    try:
        registration = await get_registration(db, registration_id)
        if member_id is not None and registration.member_id != member_id:
            raise NotOwner(registration_id=registration_id)
        _ensure_registered(registration)

        occurrence = await get_occurrence(db, registration.occurrence_id)
        if now >= occurrence.starts_at:
            raise AlreadyStarted(
                registration_id=registration_id, starts_at=occurrence.starts_at
            )

        await _transition(db, registration, RegistrationStatus.CANCELLED, now)
        await _release_seat(db, occurrence.id)

        refunded = now <= occurrence.starts_at - policy.refund_window
        if refund_override is not None and refund_override != refunded:
            logger.info(
                "Refund for registration %s overridden: %s",
                registration_id,
                "granted" if refund_override else "denied",
            )
            refunded = refund_override
        subscription_id = await _charge_subscription_id(db, registration)
        balance = None
        if refunded and subscription_id is None:
            logger.warning(
                "No subscription to refund for registration %s", registration_id
            )
            refunded = False
        elif refunded:
            balance = await ledger.credit(
                db,
                subscription_id,
                1,
                reason=LedgerReason.CANCELLATION_REFUND,
                registration_id=registration_id,
            )
        elif subscription_id is not None:
            balance = await ledger.get_balance(db, subscription_id)

        await db.commit()
    except DomainError:
        await db.rollback()
        raise

    await db.refresh(registration)
    logger.info(
        "Registration %s cancelled by %s (%s)",
        registration_id,
        f"member {member_id}" if member_id else "staff",
        "refunded" if refunded else "session forfeited",
    )
    return CancellationResult(
        registration=registration, refunded=refunded, sessions_remaining=balance
    )


async def attend(
    db: AsyncSession,
    registration_id: uuid.UUID,
    *,
    clock: Clock,
    policy: ChargePolicy,
    notes: Optional[str] = None,
) -> Checkin:
    """Record attendance: write the check-in and mark the registration attended."""
    now = clock.now()
    try:
        registration = await get_registration(db, registration_id)
        member_id = registration.member_id
        _ensure_registered(registration)
        await _ensure_not_checked_in(db, registration)

        await _transition(db, registration, RegistrationStatus.ATTENDED, now)
        checkin = Checkin(
            id=uuid.uuid4(),
            registration_id=registration_id,
            member_id=member_id,
            checkin_time=now,
            session_consumed=policy.debit_on_attend,
            notes=notes,
        )
        db.add(checkin)
        await db.flush()

        if policy.debit_on_attend:
            subscription_id = await _charge_subscription_id(db, registration)
            if subscription_id is None:
                raise NoActiveSubscription(member_id=member_id)
            await ledger.debit(
                db,
                subscription_id,
                1,
                reason=LedgerReason.ATTENDANCE,
                registration_id=registration_id,
            )
        await db.commit()
    except DomainError:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise AlreadyCheckedIn(registration_id=registration_id, member_id=member_id)

    await db.refresh(registration)
    await db.refresh(checkin)
    logger.info("Registration %s attended by member %s", registration_id, member_id)
    return checkin


async def mark_absent(
    db: AsyncSession,
    registration_id: uuid.UUID,
    *,
    clock: Clock,
    policy: ChargePolicy,
) -> Registration:
    """Mark a no-show once the class ended more than the grace period ago."""
    now = clock.now()
    try:
        registration = await get_registration(db, registration_id)
        _ensure_registered(registration)

        occurrence = await get_occurrence(db, registration.occurrence_id)
        due_at = occurrence.ends_at + policy.absence_grace
        if now <= due_at:
            raise AbsenceNotDue(registration_id=registration_id, due_at=due_at)
        await _ensure_not_checked_in(db, registration)

        await _transition(db, registration, RegistrationStatus.ABSENT, now)

        if policy.debit_on_absent:
            subscription_id = await _charge_subscription_id(db, registration)
            if subscription_id is None:
                logger.warning(
                    "No subscription to charge for absence on registration %s",
                    registration_id,
                )
            else:
                try:
                    await ledger.debit(
                        db,
                        subscription_id,
                        1,
                        reason=LedgerReason.ABSENCE,
                        registration_id=registration_id,
                    )
                except InsufficientBalance:
                    logger.warning(
                        "Absence debit skipped for registration %s: balance is zero",
                        registration_id,
                    )
        await db.commit()
    except DomainError:
        await db.rollback()
        raise

    await db.refresh(registration)
    logger.info(
        "Registration %s marked absent (member %s)",
        registration_id,
        registration.member_id,
    )
    return registration
