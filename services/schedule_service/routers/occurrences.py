import uuid
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends
from libs.common.clock import Clock, get_clock
from libs.common.datetime_utils import studio_date
from libs.common.errors import NotFound
from libs.db.session import get_async_db
from services.schedule_service.models import Occurrence
from services.schedule_service.schemas import OccurrenceResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/schedules/occurrences", tags=["occurrences"])

DEFAULT_WINDOW_DAYS = 14


@router.get("", response_model=List[OccurrenceResponse])
async def list_occurrences(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    template_id: Optional[uuid.UUID] = None,
    include_inactive: bool = False,
    available_only: bool = False,
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Occurrences in a date window (defaults to the next two weeks).

    ``available_only`` keeps only occurrences with seats left.
    """
    date_from = date_from or studio_date(clock.now())
    date_to = date_to or date_from + timedelta(days=DEFAULT_WINDOW_DAYS)

    query = select(Occurrence).where(
        Occurrence.occurrence_date >= date_from,
        Occurrence.occurrence_date <= date_to,
    )
    if template_id:
        query = query.where(Occurrence.template_id == template_id)
    if not include_inactive:
        query = query.where(Occurrence.is_active.is_(True))
    if available_only:
        query = query.where(Occurrence.participant_count < Occurrence.capacity)
    query = query.order_by(Occurrence.occurrence_date, Occurrence.start_time)

    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{occurrence_id}", response_model=OccurrenceResponse)
async def get_occurrence(
    occurrence_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(Occurrence).where(Occurrence.id == occurrence_id))
    occurrence = result.scalar_one_or_none()
    if not occurrence:
        raise NotFound("Occurrence not found", occurrence_id=occurrence_id)
    return occurrence
