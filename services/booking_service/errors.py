"""Booking, ledger and check-in failures, each with its own error code."""

from libs.common.errors import DomainError, NotFound, StateConflict


class NotOwner(DomainError):
    code = "not_owner"
    status_code = 403
    default_message = "This registration belongs to another member"


class CodeNotFound(NotFound):
    code = "code_not_found"
    default_message = "Registration not found for this QR code"


class NoActiveSubscription(StateConflict):
    code = "no_active_subscription"
    default_message = "No active subscription found"


class InsufficientBalance(StateConflict):
    code = "insufficient_balance"
    default_message = "No sessions remaining on the active subscription"


class AlreadyRegistered(StateConflict):
    code = "already_registered"
    default_message = "Already registered for this class"


class OccurrenceFull(StateConflict):
    code = "occurrence_full"
    default_message = "Class is at full capacity"


class AlreadyStarted(StateConflict):
    code = "already_started"
    default_message = "The class has already started"


class ScheduleConflict(StateConflict):
    code = "schedule_conflict"
    default_message = "You have a conflicting registration at this time"


class AlreadyCheckedIn(StateConflict):
    code = "already_checked_in"
    default_message = "Member already checked in for this class"


class AbsenceNotDue(StateConflict):
    code = "absence_not_due"
    default_message = "The grace period after the class has not elapsed yet"
