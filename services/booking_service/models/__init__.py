"""Booking Service models package.

Importing the schedule models registers the ``occurrences`` table that
registrations reference.
"""

from services.booking_service.models.core import (
    Checkin,
    MemberRef,
    Registration,
    SessionLedgerEntry,
    Subscription,
)
from services.booking_service.models.enums import (
    LedgerDirection,
    LedgerReason,
    RegistrationStatus,
    SubscriptionStatus,
)
from services.schedule_service import models as _schedule_models  # noqa: F401

__all__ = [
    "Checkin",
    "LedgerDirection",
    "LedgerReason",
    "MemberRef",
    "Registration",
    "RegistrationStatus",
    "SessionLedgerEntry",
    "Subscription",
    "SubscriptionStatus",
]
