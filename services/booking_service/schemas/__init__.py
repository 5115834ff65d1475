"""Booking Service schemas package."""

from services.booking_service.schemas.main import (
    AdminCancelRequest,
    BalanceResponse,
    BookingCreate,
    BulkBookingCreate,
    BulkBookingFailure,
    BulkBookingResponse,
    CancellationResponse,
    CheckinResponse,
    CheckinResultResponse,
    CheckinScanRequest,
    MemberRegistrationResponse,
    RegistrationResponse,
    RosterEntry,
    SweepResponse,
)

__all__ = [
    "AdminCancelRequest",
    "BalanceResponse",
    "BookingCreate",
    "BulkBookingCreate",
    "BulkBookingFailure",
    "BulkBookingResponse",
    "CancellationResponse",
    "CheckinResponse",
    "CheckinResultResponse",
    "CheckinScanRequest",
    "MemberRegistrationResponse",
    "RegistrationResponse",
    "RosterEntry",
    "SweepResponse",
]
