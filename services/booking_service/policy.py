"""Booking rules that are product decisions rather than invariants.

Sessions are always debited when a seat is booked. The legacy behavior also
charged a second session at check-in and another one when a no-show was swept;
both extra deduction points stay available behind explicit switches so the
chosen policy is visible in configuration and pinned by tests.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from libs.common.config import Settings, get_settings


@dataclass(frozen=True)
class ChargePolicy:
    debit_on_attend: bool = False
    debit_on_absent: bool = False
    refund_window: timedelta = timedelta(hours=24)
    absence_grace: timedelta = timedelta(hours=1)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ChargePolicy":
        settings = settings or get_settings()
        return cls(
            debit_on_attend=settings.SESSION_DEBIT_ON_ATTEND,
            debit_on_absent=settings.SESSION_DEBIT_ON_ABSENT,
            refund_window=timedelta(hours=settings.CANCELLATION_REFUND_WINDOW_HOURS),
            absence_grace=timedelta(minutes=settings.ABSENCE_GRACE_MINUTES),
        )


def get_charge_policy() -> ChargePolicy:
    """FastAPI dependency returning the configured policy."""
    return ChargePolicy.from_settings()
