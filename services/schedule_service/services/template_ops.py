"""Template authoring: validate, expand and persist schedule templates.

A template and its occurrences are written in one transaction; a template
whose occurrences already carry bookings or check-ins can no longer be edited
or deleted, so the session ledger's history is never rewritten after the
fact.
"""

import uuid
from datetime import date
from typing import Iterable

from libs.common.errors import DomainError, NotFound, ValidationFailed
from libs.common.logging import get_logger
from services.booking_service.models import Checkin, Registration
from services.schedule_service.errors import EmptySchedule, HasDependents
from services.schedule_service.generator import (
    generate_occurrence_dates,
    occurrence_capacity,
    template_dates,
)
from services.schedule_service.models import ClassRef, Occurrence, ScheduleTemplate
from services.schedule_service.schemas import (
    ScheduleTemplateCreate,
    ScheduleTemplateUpdate,
    TemplateFields,
)
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_template(db: AsyncSession, template_id: uuid.UUID) -> ScheduleTemplate:
    result = await db.execute(
        select(ScheduleTemplate).where(ScheduleTemplate.id == template_id)
    )
    template = result.scalar_one_or_none()
    if not template:
        raise NotFound("Template not found", template_id=template_id)
    return template


async def _get_class(db: AsyncSession, class_id: uuid.UUID) -> ClassRef:
    result = await db.execute(select(ClassRef).where(ClassRef.id == class_id))
    class_ref = result.scalar_one_or_none()
    if not class_ref:
        raise NotFound("Class not found", class_id=class_id)
    return class_ref


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------


def preview_dates(fields: TemplateFields) -> list[date]:
    """Dates a template would produce, rejecting an empty expansion."""
    dates = generate_occurrence_dates(
        fields.repetition_type,
        start_date=fields.start_date,
        end_date=fields.end_date,
        schedule_date=fields.schedule_date,
        day_of_week=fields.day_of_week,
    )
    if not dates:
        raise EmptySchedule()
    return dates


def _build_occurrences(
    template: ScheduleTemplate, class_ref: ClassRef, dates: Iterable[date]
) -> list[Occurrence]:
    capacity = occurrence_capacity(template.max_participants, class_ref.max_capacity)
    return [
        Occurrence(
            id=uuid.uuid4(),
            template_id=template.id,
            class_id=template.class_id,
            trainer_id=template.trainer_id,
            occurrence_date=day,
            start_time=template.start_time,
            end_time=template.end_time,
            capacity=capacity,
            participant_count=0,
            is_active=template.is_active,
        )
        for day in dates
    ]


# ---------------------------------------------------------------------------
# Dependents guard
# ---------------------------------------------------------------------------


async def count_dependents(
    db: AsyncSession, template_id: uuid.UUID
) -> tuple[int, int]:
    """Return ``(registrations, checkins)`` attached to the template's occurrences."""
    occurrence_ids = select(Occurrence.id).where(Occurrence.template_id == template_id)

    registrations = await db.scalar(
        select(func.count(Registration.id)).where(
            Registration.occurrence_id.in_(occurrence_ids)
        )
    )
    checkins = await db.scalar(
        select(func.count(Checkin.id))
        .join(Registration, Checkin.registration_id == Registration.id)
        .where(Registration.occurrence_id.in_(occurrence_ids))
    )
    return registrations or 0, checkins or 0


async def ensure_no_dependents(db: AsyncSession, template_id: uuid.UUID) -> None:
    # Lock the occurrences so a concurrent booking waits for this edit
    await db.execute(
        select(Occurrence.id)
        .where(Occurrence.template_id == template_id)
        .with_for_update()
    )
    registrations, checkins = await count_dependents(db, template_id)
    if registrations or checkins:
        raise HasDependents(
            template_id=template_id,
            total_registrations=registrations,
            total_checkins=checkins,
        )


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------


async def create_template(
    db: AsyncSession, data: ScheduleTemplateCreate
) -> tuple[ScheduleTemplate, list[Occurrence]]:
    """Persist a template and one occurrence per generated date."""
    class_ref = await _get_class(db, data.class_id)
    dates = preview_dates(data)

    template = ScheduleTemplate(id=uuid.uuid4(), **data.model_dump())
    occurrences = _build_occurrences(template, class_ref, dates)

    db.add(template)
    await db.flush()
    db.add_all(occurrences)
    await db.commit()
    await db.refresh(template)

    logger.info(
        "Created %s template %s with %d occurrences (%s..%s)",
        template.repetition_type.value,
        template.id,
        len(occurrences),
        dates[0],
        dates[-1],
    )
    return template, occurrences


async def update_template(
    db: AsyncSession, template_id: uuid.UUID, changes: ScheduleTemplateUpdate
) -> tuple[ScheduleTemplate, list[Occurrence]]:
    """Edit a template without dependents.

    Deactivating a template deactivates its occurrences; any other edit
    replaces the occurrences with a fresh expansion of the edited template.
    Returns the template and the occurrences created (empty when deactivated).
    """
    template = await get_template(db, template_id)

    try:
        await ensure_no_dependents(db, template_id)
        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(template, field, value)
        if template.end_time <= template.start_time:
            raise ValidationFailed(
                "end_time must be after start_time", field="end_time"
            )

        if not template.is_active:
            await db.execute(
                update(Occurrence)
                .where(Occurrence.template_id == template_id)
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            await db.refresh(template)
            logger.info("Deactivated template %s and its occurrences", template_id)
            return template, []

        class_ref = await _get_class(db, template.class_id)
        dates = template_dates(template)
        if not dates:
            raise EmptySchedule(template_id=template_id)

        await db.execute(
            delete(Occurrence)
            .where(Occurrence.template_id == template_id)
            .execution_options(synchronize_session=False)
        )
        occurrences = _build_occurrences(template, class_ref, dates)
        db.add_all(occurrences)
        await db.commit()
    except DomainError:
        await db.rollback()
        raise
    except IntegrityError:
        # A booking landed on an occurrence after the guard ran
        await db.rollback()
        raise HasDependents(template_id=template_id)

    await db.refresh(template)
    logger.info(
        "Updated template %s, regenerated %d occurrences", template_id, len(occurrences)
    )
    return template, occurrences


async def delete_template(db: AsyncSession, template_id: uuid.UUID) -> None:
    """Delete a template and its occurrences when nothing references them."""
    template = await get_template(db, template_id)

    try:
        await ensure_no_dependents(db, template_id)
        await db.execute(
            delete(Occurrence)
            .where(Occurrence.template_id == template_id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(template)
        await db.commit()
    except HasDependents:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise HasDependents(template_id=template_id)
    logger.info("Deleted template %s", template_id)
