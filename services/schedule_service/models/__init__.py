"""Schedule Service models package."""

from services.schedule_service.models.core import ClassRef, Occurrence, ScheduleTemplate
from services.schedule_service.models.enums import DayOfWeek, RepetitionType

__all__ = [
    "ClassRef",
    "DayOfWeek",
    "Occurrence",
    "RepetitionType",
    "ScheduleTemplate",
]
