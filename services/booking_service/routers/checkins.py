from datetime import date, time, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.clock import Clock, get_clock
from libs.common.datetime_utils import studio_date, studio_datetime
from libs.db.session import get_async_db
from services.booking_service.models import Checkin
from services.booking_service.policy import ChargePolicy, get_charge_policy
from services.booking_service.schemas import (
    CheckinResponse,
    CheckinResultResponse,
    CheckinScanRequest,
    RegistrationResponse,
)
from services.booking_service.services import checkin_ops
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/checkins", tags=["checkins"])


@router.post("/scan", response_model=CheckinResultResponse)
async def scan_checkin(
    scan_in: CheckinScanRequest,
    current_user: AuthUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    policy: ChargePolicy = Depends(get_charge_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Check a member in from the QR code on their booking."""
    result = await checkin_ops.check_in(
        db, scan_in.code, clock=clock, policy=policy, notes=scan_in.notes
    )
    return CheckinResultResponse(
        checkin=CheckinResponse.model_validate(result.checkin),
        registration=RegistrationResponse.model_validate(result.registration),
        member_id=result.member_id,
        sessions_remaining=result.sessions_remaining,
    )


@router.get("", response_model=List[CheckinResponse])
async def list_checkins(
    day: Optional[date] = Query(None, alias="date"),
    current_user: AuthUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_async_db),
):
    """Check-ins recorded on a studio-local day (defaults to today)."""
    day = day or studio_date(clock.now())
    day_start = studio_datetime(day, time.min)
    day_end = studio_datetime(day + timedelta(days=1), time.min)

    result = await db.execute(
        select(Checkin)
        .where(Checkin.checkin_time >= day_start, Checkin.checkin_time < day_end)
        .order_by(Checkin.checkin_time.desc())
    )
    return result.scalars().all()
