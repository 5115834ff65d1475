import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from libs.common.clock import Clock, get_clock
from libs.db.session import get_async_db
from services.booking_service.models import (
    MemberRef,
    Registration,
    RegistrationStatus,
)
from services.booking_service.policy import ChargePolicy, get_charge_policy
from services.booking_service.routers._helpers import get_current_member
from services.booking_service.schemas import (
    BalanceResponse,
    BookingCreate,
    CancellationResponse,
    MemberRegistrationResponse,
    RegistrationResponse,
)
from services.booking_service.services import booking_ops, ledger
from services.schedule_service.models import Occurrence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED
)
async def create_booking(
    booking_in: BookingCreate,
    member: MemberRef = Depends(get_current_member),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Book a seat on an upcoming class; one session is debited.

    Set ``force`` to book despite an overlapping booking the same day.
    """
    return await booking_ops.book(
        db,
        member.id,
        booking_in.occurrence_id,
        clock=clock,
        skip_overlap_check=booking_in.force,
    )


@router.post("/{registration_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    registration_id: uuid.UUID,
    member: MemberRef = Depends(get_current_member),
    clock: Clock = Depends(get_clock),
    policy: ChargePolicy = Depends(get_charge_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Cancel one of your bookings.

    The session is refunded when cancelling at least 24 hours before the class.
    """
    result = await booking_ops.cancel(
        db, member.id, registration_id, clock=clock, policy=policy
    )
    return CancellationResponse(
        registration=RegistrationResponse.model_validate(result.registration),
        refunded=result.refunded,
        sessions_remaining=result.sessions_remaining,
    )


@router.get("/me", response_model=List[MemberRegistrationResponse])
async def list_my_bookings(
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    member: MemberRef = Depends(get_current_member),
    db: AsyncSession = Depends(get_async_db),
):
    """Your registrations, newest first."""
    query = (
        select(Registration, Occurrence)
        .join(Occurrence, Registration.occurrence_id == Occurrence.id)
        .where(Registration.member_id == member.id)
    )
    if status_filter:
        query = query.where(Registration.status == status_filter)
    query = query.order_by(Registration.registered_at.desc())

    result = await db.execute(query)
    return [
        MemberRegistrationResponse(
            **RegistrationResponse.model_validate(registration).model_dump(),
            occurrence_date=occurrence.occurrence_date,
            start_time=occurrence.start_time,
            end_time=occurrence.end_time,
        )
        for registration, occurrence in result.all()
    ]


@router.get("/me/balance", response_model=BalanceResponse)
async def get_my_balance(
    member: MemberRef = Depends(get_current_member),
    db: AsyncSession = Depends(get_async_db),
):
    """Sessions left on your active subscription (0 when there is none)."""
    subscription = await ledger.active_subscription_for(db, member.id)
    if not subscription:
        return BalanceResponse(sessions_remaining=0)
    return BalanceResponse(
        subscription_id=subscription.id,
        sessions_remaining=await ledger.get_balance(db, subscription.id),
        end_date=subscription.end_date,
    )
