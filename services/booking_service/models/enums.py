"""Enum definitions for booking service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class RegistrationStatus(str, enum.Enum):
    REGISTERED = "registered"
    ATTENDED = "attended"
    CANCELLED = "cancelled"
    ABSENT = "absent"

    @property
    def is_terminal(self) -> bool:
        return self is not RegistrationStatus.REGISTERED


class LedgerDirection(str, enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class LedgerReason(str, enum.Enum):
    BOOKING = "booking"
    ATTENDANCE = "attendance"
    ABSENCE = "absence"
    CANCELLATION_REFUND = "cancellation_refund"
