import uuid
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from services.schedule_service.models.enums import RepetitionType


class TemplateFields(BaseModel):
    start_time: time
    end_time: time
    repetition_type: RepetitionType
    day_of_week: Optional[int] = Field(
        None, ge=0, le=6, description="0=Sunday, 6=Saturday (weekly only)"
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule_date: Optional[date] = Field(None, description="One-time date")

    @model_validator(mode="after")
    def check_time_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleTemplateCreate(TemplateFields):
    class_id: uuid.UUID
    trainer_id: uuid.UUID
    max_participants: int = Field(10, gt=0)
    is_active: bool = True


class ScheduleTemplateUpdate(BaseModel):
    class_id: Optional[uuid.UUID] = None
    trainer_id: Optional[uuid.UUID] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    repetition_type: Optional[RepetitionType] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule_date: Optional[date] = None
    max_participants: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None

    @field_validator(
        "class_id",
        "trainer_id",
        "start_time",
        "end_time",
        "repetition_type",
        "max_participants",
        "is_active",
    )
    @classmethod
    def reject_null(cls, value, info):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class ScheduleTemplateResponse(BaseModel):
    id: uuid.UUID
    class_id: uuid.UUID
    trainer_id: uuid.UUID
    start_time: time
    end_time: time
    repetition_type: RepetitionType
    day_of_week: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule_date: Optional[date] = None
    max_participants: int
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TemplateSaveResponse(BaseModel):
    """Template plus the occurrences generated for it."""

    template: ScheduleTemplateResponse
    occurrence_ids: List[uuid.UUID]
    created: int


class TemplatePreviewResponse(BaseModel):
    dates: List[date]
    count: int


class OccurrenceResponse(BaseModel):
    id: uuid.UUID
    template_id: uuid.UUID
    class_id: uuid.UUID
    trainer_id: uuid.UUID
    occurrence_date: date
    start_time: time
    end_time: time
    starts_at: datetime
    ends_at: datetime
    capacity: int
    participant_count: int
    seats_left: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
