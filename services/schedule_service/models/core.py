import uuid
from datetime import date, datetime, time
from typing import Optional

from libs.common.datetime_utils import studio_datetime, utc_now
from libs.db.base import Base
from services.schedule_service.models.enums import RepetitionType, enum_values
from sqlalchemy import Boolean, CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Time
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

# ============================================================================
# EXTERNAL REFERENCES
# ============================================================================


class ClassRef(Base):
    """Reference to the class catalog, which is managed outside this service."""

    __tablename__ = "classes"
    __table_args__ = {"extend_existing": True, "info": {"skip_autogenerate": True}}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    def __repr__(self):
        return f"<ClassRef {self.name} cap={self.max_capacity}>"


# ============================================================================
# SCHEDULE TEMPLATE
# ============================================================================


class ScheduleTemplate(Base):
    """Recurring class definition from which occurrences are generated."""

    __tablename__ = "schedule_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True
    )
    trainer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )

    # Time-of-day window, studio-local
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    # Recurrence pattern
    repetition_type: Mapped[RepetitionType] = mapped_column(
        SAEnum(
            RepetitionType,
            name="repetition_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    day_of_week: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # 0=Sunday, 6=Saturday; weekly only
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    schedule_date: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True
    )  # once only

    max_participants: Mapped[int] = mapped_column(
        Integer, nullable=False, default=10, server_default="10"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_schedule_template_day_of_week",
        ),
        CheckConstraint(
            "max_participants > 0", name="ck_schedule_template_max_participants"
        ),
    )

    def __repr__(self):
        return f"<ScheduleTemplate {self.id} {self.repetition_type.value}>"


# ============================================================================
# OCCURRENCE
# ============================================================================


class Occurrence(Base):
    """One dated, bookable instance of a template."""

    __tablename__ = "occurrences"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schedule_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False
    )
    trainer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    occurrence_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    # Copied from the template at generation time, not live-linked
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    participant_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "participant_count >= 0", name="ck_occurrence_participants_non_negative"
        ),
        CheckConstraint(
            "participant_count <= capacity", name="ck_occurrence_within_capacity"
        ),
    )

    @property
    def starts_at(self) -> datetime:
        return studio_datetime(self.occurrence_date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return studio_datetime(self.occurrence_date, self.end_time)

    @property
    def seats_left(self) -> int:
        return max(self.capacity - self.participant_count, 0)

    def __repr__(self):
        return f"<Occurrence {self.occurrence_date} {self.start_time} ({self.participant_count}/{self.capacity})>"
