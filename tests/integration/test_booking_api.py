"""Integration tests for booking_service endpoints."""

import uuid
from datetime import datetime, time

import pytest
from libs.common.config import get_settings
from libs.common.datetime_utils import studio_tz
from tests.conftest import make_admin_user, make_member_user, override_auth
from tests.factories import MemberRefFactory, SubscriptionFactory


def _booking_app():
    from services.booking_service.app.main import app

    return app


# ---------------------------------------------------------------------------
# Member bookings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_book_and_list(booking_client, member, subscription, make_occurrence):
    """POST /bookings: 201 and the booking shows up under /bookings/me."""
    occurrence = await make_occurrence()

    response = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "registered"
    assert data["member_id"] == str(member.id)
    assert data["qr_code"]

    mine = await booking_client.get("/bookings/me")
    assert mine.status_code == 200
    rows = mine.json()
    assert len(rows) == 1
    assert rows[0]["occurrence_date"] == "2025-01-08"
    assert rows[0]["start_time"] == "18:00:00"

    balance = await booking_client.get("/bookings/me/balance")
    assert balance.json()["sessions_remaining"] == 9
    assert balance.json()["subscription_id"] == str(subscription.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_book_full_class(booking_client, member, subscription, make_occurrence):
    occurrence = await make_occurrence(capacity=1, participant_count=1)

    response = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "occurrence_full"
    assert data["capacity"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_book_without_member_profile(booking_client, make_occurrence):
    occurrence = await make_occurrence()

    with override_auth(_booking_app(), make_member_user(user_id="stranger")):
        response = await booking_client.post(
            "/bookings", json={"occurrence_id": str(occurrence.id)}
        )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_balance_without_subscription(booking_client, member):
    response = await booking_client.get("/bookings/me/balance")

    assert response.status_code == 200
    assert response.json() == {
        "subscription_id": None,
        "sessions_remaining": 0,
        "end_date": None,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_booking_with_refund(
    booking_client, member, subscription, make_occurrence
):
    """POST /bookings/{id}/cancel: early cancellation gives the session back."""
    occurrence = await make_occurrence()
    booked = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )
    registration_id = booked.json()["id"]

    response = await booking_client.post(f"/bookings/{registration_id}/cancel")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["refunded"] is True
    assert data["sessions_remaining"] == 10
    assert data["registration"]["status"] == "cancelled"

    again = await booking_client.post(f"/bookings/{registration_id}/cancel")
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_transition"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_late_forfeits_session(
    booking_client, member, subscription, make_occurrence, clock
):
    occurrence = await make_occurrence()
    booked = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )

    clock.set(datetime(2025, 1, 8, 12, 0, tzinfo=studio_tz()))
    response = await booking_client.post(f"/bookings/{booked.json()['id']}/cancel")

    assert response.status_code == 200
    assert response.json()["refunded"] is False
    assert response.json()["sessions_remaining"] == 9


# ---------------------------------------------------------------------------
# Front desk
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_scan_checkin_and_roster(
    booking_client, member, subscription, make_occurrence
):
    occurrence = await make_occurrence()
    booked = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )
    code = booked.json()["qr_code"]

    with override_auth(_booking_app(), make_admin_user()):
        scan = await booking_client.post("/checkins/scan", json={"code": code})
        repeat = await booking_client.post("/checkins/scan", json={"code": code})
        today = await booking_client.get("/checkins", params={"date": "2025-01-06"})
        other_day = await booking_client.get(
            "/checkins", params={"date": "2025-01-07"}
        )
        roster = await booking_client.get(
            f"/admin/occurrences/{occurrence.id}/registrations"
        )

    assert scan.status_code == 200, scan.text
    data = scan.json()
    assert data["member_id"] == str(member.id)
    assert data["registration"]["status"] == "attended"
    assert data["sessions_remaining"] == 9

    assert repeat.status_code == 409
    assert repeat.json()["error"] == "already_checked_in"
    assert repeat.json()["member_id"] == str(member.id)

    assert len(today.json()) == 1
    assert other_day.json() == []

    entries = roster.json()
    assert len(entries) == 1
    assert entries[0]["status"] == "attended"
    assert entries[0]["checkin_time"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_scan_unknown_code(booking_client):
    with override_auth(_booking_app(), make_admin_user()):
        response = await booking_client.post(
            "/checkins/scan", json={"code": "not-a-real-code"}
        )

    assert response.status_code == 404
    assert response.json()["error"] == "code_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_scan_requires_admin(booking_client):
    response = await booking_client.post("/checkins/scan", json={"code": "anything"})

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_roster_of_unknown_occurrence(booking_client):
    with override_auth(_booking_app(), make_admin_user()):
        response = await booking_client.get(
            f"/admin/occurrences/{uuid.uuid4()}/registrations"
        )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_force_booking_over_a_conflict(
    booking_client, member, subscription, make_occurrence
):
    evening = await make_occurrence(start_time=time(18, 0), end_time=time(19, 0))
    overlapping = await make_occurrence(start_time=time(18, 30), end_time=time(19, 30))
    await booking_client.post("/bookings", json={"occurrence_id": str(evening.id)})

    refused = await booking_client.post(
        "/bookings", json={"occurrence_id": str(overlapping.id)}
    )
    forced = await booking_client.post(
        "/bookings", json={"occurrence_id": str(overlapping.id), "force": True}
    )

    assert refused.status_code == 409
    assert refused.json()["error"] == "schedule_conflict"
    assert forced.status_code == 201, forced.text


# ---------------------------------------------------------------------------
# Admin registrations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "body,refunded,balance",
    [({"refund_session": True}, True, 10), (None, False, 9)],
)
async def test_admin_cancel_late_booking(
    booking_client,
    member,
    subscription,
    make_occurrence,
    clock,
    body,
    refunded,
    balance,
):
    """POST /admin/registrations/{id}/cancel: the refund rule can be overridden."""
    occurrence = await make_occurrence()
    booked = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )
    registration_id = booked.json()["id"]
    clock.set(datetime(2025, 1, 8, 17, 0, tzinfo=studio_tz()))

    with override_auth(_booking_app(), make_admin_user()):
        response = await booking_client.post(
            f"/admin/registrations/{registration_id}/cancel", json=body
        )

    assert response.status_code == 200, response.text
    assert response.json()["refunded"] is refunded
    assert response.json()["sessions_remaining"] == balance
    assert response.json()["registration"]["status"] == "cancelled"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_bulk_booking(
    booking_client, db_session, member, subscription, make_occurrence
):
    """POST /admin/occurrences/{id}/registrations: books members on their behalf."""
    occurrence = await make_occurrence()
    other = MemberRefFactory.create()
    db_session.add(other)
    await db_session.flush()
    db_session.add(SubscriptionFactory.create(member_id=other.id))
    await db_session.commit()

    with override_auth(_booking_app(), make_admin_user()):
        response = await booking_client.post(
            f"/admin/occurrences/{occurrence.id}/registrations",
            json={"member_ids": [str(member.id), str(other.id)]},
        )
        roster = await booking_client.get(
            f"/admin/occurrences/{occurrence.id}/registrations"
        )
        unknown = await booking_client.post(
            f"/admin/occurrences/{occurrence.id}/registrations",
            json={"member_ids": [str(uuid.uuid4())]},
        )

    assert response.status_code == 200, response.text
    data = response.json()
    assert {row["member_id"] for row in data["registered"]} == {
        str(member.id),
        str(other.id),
    }
    assert data["failed"] == []
    assert len(roster.json()) == 2
    assert unknown.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_bulk_booking_requires_admin(
    booking_client, member, make_occurrence
):
    occurrence = await make_occurrence()

    response = await booking_client.post(
        f"/admin/occurrences/{occurrence.id}/registrations",
        json={"member_ids": [str(member.id)]},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_marks_one_registration_absent(
    booking_client, member, subscription, make_occurrence, clock
):
    occurrence = await make_occurrence()
    booked = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )
    registration_id = booked.json()["id"]

    with override_auth(_booking_app(), make_admin_user()):
        clock.set(datetime(2025, 1, 8, 19, 30, tzinfo=studio_tz()))
        early = await booking_client.post(
            f"/admin/registrations/{registration_id}/mark-absent"
        )
        clock.set(datetime(2025, 1, 8, 20, 30, tzinfo=studio_tz()))
        marked = await booking_client.post(
            f"/admin/registrations/{registration_id}/mark-absent"
        )

    assert early.status_code == 409
    assert early.json()["error"] == "absence_not_due"
    assert marked.status_code == 200, marked.text
    assert marked.json()["status"] == "absent"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_runs_absence_sweep(
    booking_client, member, subscription, make_occurrence, clock
):
    """POST /admin/registrations/mark-absent: sweep on demand."""
    occurrence = await make_occurrence()
    await booking_client.post("/bookings", json={"occurrence_id": str(occurrence.id)})
    clock.set(datetime(2025, 1, 9, 6, 0, tzinfo=studio_tz()))

    with override_auth(_booking_app(), make_admin_user()):
        response = await booking_client.post("/admin/registrations/mark-absent")
        again = await booking_client.post("/admin/registrations/mark-absent")

    assert response.status_code == 200, response.text
    assert response.json()["marked"] == 1
    assert again.json()["marked"] == 0


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reconcile_endpoint(
    booking_client, member, subscription, make_occurrence, clock, monkeypatch
):
    """POST /internal/reconcile: guarded by CRON_SECRET, marks no-shows."""
    monkeypatch.setattr(get_settings(), "CRON_SECRET", "s3cret")
    occurrence = await make_occurrence()
    booked = await booking_client.post(
        "/bookings", json={"occurrence_id": str(occurrence.id)}
    )
    assert booked.status_code == 201

    clock.set(datetime(2025, 1, 9, 6, 0, tzinfo=studio_tz()))

    denied = await booking_client.post("/internal/reconcile")
    assert denied.status_code == 401

    response = await booking_client.post(
        "/internal/reconcile", headers={"Authorization": "Bearer s3cret"}
    )
    assert response.status_code == 200, response.text
    assert response.json()["marked"] == 1

    mine = await booking_client.get("/bookings/me")
    assert mine.json()[0]["status"] == "absent"
