"""Datetime utilities for timezone-aware timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

Occurrences are stored as a studio-local calendar date plus a time of day;
``studio_datetime`` turns that pair into an aware instant that can be compared
with ``Clock.now()``.
"""

from datetime import date, datetime, time, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for row timestamps in the database.
    """
    return datetime.now(timezone.utc)


@lru_cache
def studio_tz() -> ZoneInfo:
    """The studio's local timezone (``Settings.TIMEZONE``)."""
    return ZoneInfo(get_settings().TIMEZONE)


def studio_datetime(day: date, at: time) -> datetime:
    """Combine a local date and time of day into an aware instant."""
    return datetime.combine(day, at).replace(tzinfo=studio_tz())


def studio_date(instant: datetime) -> date:
    """Calendar date of ``instant`` on the studio clock."""
    return instant.astimezone(studio_tz()).date()
