import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.clock import Clock, get_clock
from libs.db.session import get_async_db
from services.booking_service.models import Checkin, Registration
from services.booking_service.policy import ChargePolicy, get_charge_policy
from services.booking_service.schemas import (
    AdminCancelRequest,
    BulkBookingCreate,
    BulkBookingFailure,
    BulkBookingResponse,
    CancellationResponse,
    RegistrationResponse,
    RosterEntry,
    SweepResponse,
)
from services.booking_service.services import booking_ops
from services.booking_service.tasks import mark_absent_registrations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/occurrences/{occurrence_id}/registrations", response_model=List[RosterEntry]
)
async def get_occurrence_roster(
    occurrence_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Everyone booked on a class, with their check-in time if any."""
    await booking_ops.get_occurrence(db, occurrence_id)

    result = await db.execute(
        select(Registration, Checkin.checkin_time)
        .outerjoin(Checkin, Checkin.registration_id == Registration.id)
        .where(Registration.occurrence_id == occurrence_id)
        .order_by(Registration.registered_at)
    )
    return [
        RosterEntry(
            registration_id=registration.id,
            member_id=registration.member_id,
            status=registration.status,
            registered_at=registration.registered_at,
            checkin_time=checkin_time,
        )
        for registration, checkin_time in result.all()
    ]


@router.post(
    "/occurrences/{occurrence_id}/registrations", response_model=BulkBookingResponse
)
async def bulk_book_members(
    occurrence_id: uuid.UUID,
    bulk_in: BulkBookingCreate,
    current_user: AuthUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Book members onto a class on their behalf.

    Each member is debited one session as if they had booked themselves.
    Members who cannot be booked are reported in ``failed``.
    """
    result = await booking_ops.bulk_book(
        db,
        occurrence_id,
        bulk_in.member_ids,
        clock=clock,
        skip_overlap_check=bulk_in.skip_overlap_check,
    )
    return BulkBookingResponse(
        registered=[
            RegistrationResponse.model_validate(registration)
            for registration in result.registered
        ],
        already_registered=result.already_registered,
        failed=[
            BulkBookingFailure(member_id=member_id, error=exc.code, detail=exc.message)
            for member_id, exc in result.failed
        ],
    )


@router.post("/registrations/mark-absent", response_model=SweepResponse)
async def mark_absent_now(
    current_user: AuthUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    policy: ChargePolicy = Depends(get_charge_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Run the no-show sweep without waiting for the scheduler."""
    return await mark_absent_registrations(db, clock=clock, policy=policy)


@router.post(
    "/registrations/{registration_id}/cancel", response_model=CancellationResponse
)
async def cancel_registration(
    registration_id: uuid.UUID,
    cancel_in: Optional[AdminCancelRequest] = None,
    current_user: AuthUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    policy: ChargePolicy = Depends(get_charge_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel any member's booking, optionally overriding the refund rule."""
    result = await booking_ops.cancel(
        db,
        None,
        registration_id,
        clock=clock,
        policy=policy,
        refund_override=cancel_in.refund_session if cancel_in else None,
    )
    return CancellationResponse(
        registration=RegistrationResponse.model_validate(result.registration),
        refunded=result.refunded,
        sessions_remaining=result.sessions_remaining,
    )


@router.post(
    "/registrations/{registration_id}/mark-absent",
    response_model=RegistrationResponse,
)
async def mark_registration_absent(
    registration_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    policy: ChargePolicy = Depends(get_charge_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark one no-show absent once its class is past the grace period."""
    return await booking_ops.mark_absent(
        db, registration_id, clock=clock, policy=policy
    )
