import uuid
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.booking_service.models.enums import RegistrationStatus


class BookingCreate(BaseModel):
    occurrence_id: uuid.UUID
    force: bool = Field(
        False, description="Book even if it overlaps another of your bookings"
    )


class RegistrationResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    occurrence_id: uuid.UUID
    subscription_id: Optional[uuid.UUID] = None
    qr_code: str
    status: RegistrationStatus
    notes: Optional[str] = None
    registered_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MemberRegistrationResponse(RegistrationResponse):
    """Registration with the schedule details a member needs to see."""

    occurrence_date: date
    start_time: time
    end_time: time


class CancellationResponse(BaseModel):
    registration: RegistrationResponse
    refunded: bool
    sessions_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class AdminCancelRequest(BaseModel):
    refund_session: Optional[bool] = Field(
        None,
        description="Force (true) or deny (false) the refund; omit to apply the window",
    )


class BulkBookingCreate(BaseModel):
    member_ids: List[uuid.UUID] = Field(..., min_length=1)
    skip_overlap_check: bool = False


class BulkBookingFailure(BaseModel):
    member_id: uuid.UUID
    error: str
    detail: str


class BulkBookingResponse(BaseModel):
    registered: List[RegistrationResponse]
    already_registered: List[uuid.UUID]
    failed: List[BulkBookingFailure]


class BalanceResponse(BaseModel):
    subscription_id: Optional[uuid.UUID] = None
    sessions_remaining: int
    end_date: Optional[datetime] = None


class CheckinScanRequest(BaseModel):
    code: str = Field(..., min_length=1)
    notes: Optional[str] = None


class CheckinResponse(BaseModel):
    id: uuid.UUID
    registration_id: uuid.UUID
    member_id: uuid.UUID
    checkin_time: datetime
    session_consumed: bool
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CheckinResultResponse(BaseModel):
    checkin: CheckinResponse
    registration: RegistrationResponse
    member_id: uuid.UUID
    sessions_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class RosterEntry(BaseModel):
    registration_id: uuid.UUID
    member_id: uuid.UUID
    status: RegistrationStatus
    registered_at: datetime
    checkin_time: Optional[datetime] = None


class SweepResponse(BaseModel):
    scanned: int
    marked: int
    skipped: int
    ran_at: datetime

    model_config = ConfigDict(from_attributes=True)
