import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.schedule_service.models import ScheduleTemplate
from services.schedule_service.schemas import (
    ScheduleTemplateCreate,
    ScheduleTemplateResponse,
    ScheduleTemplateUpdate,
    TemplateFields,
    TemplatePreviewResponse,
    TemplateSaveResponse,
)
from services.schedule_service.services import template_ops
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/schedules/templates", tags=["schedule-templates"])


@router.get("", response_model=List[ScheduleTemplateResponse])
async def list_templates(
    active_only: bool = True,
    db: AsyncSession = Depends(get_async_db),
):
    """List schedule templates."""
    query = select(ScheduleTemplate)
    if active_only:
        query = query.where(ScheduleTemplate.is_active.is_(True))
    query = query.order_by(ScheduleTemplate.created_at)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/preview", response_model=TemplatePreviewResponse)
async def preview_template(
    fields: TemplateFields,
    current_user: AuthUser = Depends(require_admin),
):
    """Dates the template would generate. Nothing is persisted."""
    dates = template_ops.preview_dates(fields)
    return TemplatePreviewResponse(dates=dates, count=len(dates))


@router.get("/{template_id}", response_model=ScheduleTemplateResponse)
async def get_template(
    template_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    return await template_ops.get_template(db, template_id)


@router.post(
    "", response_model=TemplateSaveResponse, status_code=status.HTTP_201_CREATED
)
async def create_template(
    template_in: ScheduleTemplateCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a template and materialize its occurrences."""
    template, occurrences = await template_ops.create_template(db, template_in)
    return TemplateSaveResponse(
        template=ScheduleTemplateResponse.model_validate(template),
        occurrence_ids=[o.id for o in occurrences],
        created=len(occurrences),
    )


@router.patch("/{template_id}", response_model=TemplateSaveResponse)
async def update_template(
    template_id: uuid.UUID,
    template_in: ScheduleTemplateUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit a template that has no bookings yet; occurrences are regenerated."""
    template, occurrences = await template_ops.update_template(
        db, template_id, template_in
    )
    return TemplateSaveResponse(
        template=ScheduleTemplateResponse.model_validate(template),
        occurrence_ids=[o.id for o in occurrences],
        created=len(occurrences),
    )


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a template that has no bookings yet, with its occurrences."""
    await template_ops.delete_template(db, template_id)
