"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    member = MemberRefFactory.create(auth_id="member-1")
    db_session.add(member)
    await db_session.commit()
"""

import secrets
import uuid
from datetime import date, datetime, time, timedelta, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Wednesday; the default test clock sits on the Monday before it
DEFAULT_CLASS_DAY = date(2025, 1, 8)


# ---------------------------------------------------------------------------
# Catalog references
# ---------------------------------------------------------------------------


class ClassRefFactory:
    @staticmethod
    def create(**overrides):
        from services.schedule_service.models import ClassRef

        defaults = {
            "id": _uuid(),
            "name": "Reformer Pilates",
            "max_capacity": 12,
            "is_active": True,
        }
        defaults.update(overrides)
        return ClassRef(**defaults)


class MemberRefFactory:
    @staticmethod
    def create(**overrides):
        from services.booking_service.models import MemberRef

        defaults = {
            "id": _uuid(),
            "auth_id": f"auth-{uuid.uuid4().hex[:8]}",
        }
        defaults.update(overrides)
        return MemberRef(**defaults)


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class ScheduleTemplateFactory:
    @staticmethod
    def create(class_id=None, **overrides):
        from services.schedule_service.models import RepetitionType, ScheduleTemplate

        defaults = {
            "id": _uuid(),
            "class_id": class_id or _uuid(),
            "trainer_id": _uuid(),
            "start_time": time(18, 0),
            "end_time": time(19, 0),
            "repetition_type": RepetitionType.WEEKLY,
            "day_of_week": 3,
            "start_date": date(2025, 1, 6),
            "end_date": date(2025, 1, 26),
            "schedule_date": None,
            "max_participants": 10,
            "is_active": True,
        }
        defaults.update(overrides)
        return ScheduleTemplate(**defaults)


class OccurrenceFactory:
    @staticmethod
    def create(template_id=None, class_id=None, **overrides):
        from services.schedule_service.models import Occurrence

        defaults = {
            "id": _uuid(),
            "template_id": template_id or _uuid(),
            "class_id": class_id or _uuid(),
            "trainer_id": _uuid(),
            "occurrence_date": DEFAULT_CLASS_DAY,
            "start_time": time(18, 0),
            "end_time": time(19, 0),
            "capacity": 10,
            "participant_count": 0,
            "is_active": True,
        }
        defaults.update(overrides)
        return Occurrence(**defaults)


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------


class SubscriptionFactory:
    @staticmethod
    def create(member_id=None, **overrides):
        from services.booking_service.models import Subscription, SubscriptionStatus

        defaults = {
            "id": _uuid(),
            "member_id": member_id or _uuid(),
            "plan_id": _uuid(),
            "start_date": datetime(2025, 1, 1, tzinfo=timezone.utc),
            "end_date": datetime(2025, 3, 31, tzinfo=timezone.utc),
            "sessions_remaining": 10,
            "status": SubscriptionStatus.ACTIVE,
        }
        defaults.update(overrides)
        return Subscription(**defaults)


class RegistrationFactory:
    @staticmethod
    def create(member_id=None, occurrence_id=None, **overrides):
        from services.booking_service.models import Registration, RegistrationStatus

        defaults = {
            "id": _uuid(),
            "member_id": member_id or _uuid(),
            "occurrence_id": occurrence_id or _uuid(),
            "subscription_id": None,
            "qr_code": secrets.token_urlsafe(16),
            "status": RegistrationStatus.REGISTERED,
            "registered_at": _now() - timedelta(days=1),
        }
        defaults.update(overrides)
        return Registration(**defaults)
