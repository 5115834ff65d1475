"""Scheduler-facing endpoints (cron secret protected)."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_cron_secret
from libs.common.clock import Clock, get_clock
from libs.db.session import get_async_db
from services.booking_service.policy import ChargePolicy, get_charge_policy
from services.booking_service.schemas import SweepResponse
from services.booking_service.tasks import mark_absent_registrations
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/internal", tags=["internal"])


@router.post(
    "/reconcile",
    response_model=SweepResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def reconcile_registrations(
    clock: Clock = Depends(get_clock),
    policy: ChargePolicy = Depends(get_charge_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Run the no-show sweep now."""
    return await mark_absent_registrations(db, clock=clock, policy=policy)
