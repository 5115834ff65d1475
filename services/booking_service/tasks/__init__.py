"""Public exports for booking background tasks."""

from services.booking_service.tasks.reconciliation import (
    SweepResult,
    mark_absent_registrations,
    run_reconciliation_sweep,
)

__all__ = [
    "SweepResult",
    "mark_absent_registrations",
    "run_reconciliation_sweep",
]
