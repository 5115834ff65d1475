"""Expansion of a schedule template into occurrence dates.

Everything here is pure: no storage access, no clock. The same inputs always
produce the same ordered list of dates, which is what template authoring
persists (one occurrence per date) and what the preview endpoint returns.
"""

from datetime import date, timedelta
from typing import Optional

from libs.common.errors import ValidationFailed
from services.schedule_service.models.enums import DayOfWeek, RepetitionType

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)


def first_weekday_on_or_after(start: date, day_of_week: int) -> date:
    """First date >= ``start`` falling on ``day_of_week`` (0=Sunday)."""
    offset = (day_of_week - DayOfWeek.of(start) + 7) % 7
    return start + timedelta(days=offset)


def generate_occurrence_dates(
    repetition_type: RepetitionType,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    schedule_date: Optional[date] = None,
    day_of_week: Optional[int] = None,
) -> list[date]:
    """Return the ordered occurrence dates a template declares.

    - ``once``: ``[schedule_date]``
    - ``daily``: every date of ``[start_date, end_date]``
    - ``weekly``: the first ``day_of_week`` on or after ``start_date``, then
      every 7 days up to ``end_date``

    An inverted window, or a weekly window that contains no matching weekday,
    yields an empty list. Missing fields for the repetition type raise
    ``ValidationFailed``.
    """
    repetition_type = RepetitionType(repetition_type)

    if repetition_type == RepetitionType.ONCE:
        if schedule_date is None:
            raise ValidationFailed(
                "schedule_date is required for one-time schedules",
                field="schedule_date",
            )
        return [schedule_date]

    if start_date is None or end_date is None:
        raise ValidationFailed(
            "start_date and end_date are required for recurring schedules",
            field="start_date" if start_date is None else "end_date",
        )
    if start_date > end_date:
        return []

    if repetition_type == RepetitionType.DAILY:
        span = (end_date - start_date).days
        return [start_date + timedelta(days=i) for i in range(span + 1)]

    if day_of_week is None:
        raise ValidationFailed(
            "day_of_week is required for weekly schedules", field="day_of_week"
        )
    if not 0 <= day_of_week <= 6:
        raise ValidationFailed(
            "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
            field="day_of_week",
        )

    dates = []
    current = first_weekday_on_or_after(start_date, day_of_week)
    while current <= end_date:
        dates.append(current)
        current += ONE_WEEK
    return dates


def template_dates(template) -> list[date]:
    """Dates for a ``ScheduleTemplate`` (or any object with the same fields)."""
    return generate_occurrence_dates(
        template.repetition_type,
        start_date=template.start_date,
        end_date=template.end_date,
        schedule_date=template.schedule_date,
        day_of_week=template.day_of_week,
    )


def occurrence_capacity(max_participants: int, class_capacity: int) -> int:
    """Seats copied onto each occurrence: the tighter of template and class."""
    return min(max_participants, class_capacity)
