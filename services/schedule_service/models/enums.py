"""Enum definitions for schedule service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class RepetitionType(str, enum.Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"


class DayOfWeek(enum.IntEnum):
    """Studio weekday numbering: Sunday first."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day) -> "DayOfWeek":
        """Weekday of a ``date`` in this numbering (``date.weekday`` is Monday=0)."""
        return cls((day.weekday() + 1) % 7)
