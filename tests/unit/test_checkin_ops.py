"""Unit tests for QR code check-in."""

import pytest
from libs.common.errors import InvalidTransition
from services.booking_service.errors import (
    AlreadyCheckedIn,
    CodeNotFound,
    InsufficientBalance,
    NoActiveSubscription,
)
from services.booking_service.models import RegistrationStatus, SubscriptionStatus
from services.booking_service.policy import ChargePolicy
from services.booking_service.services import booking_ops, checkin_ops, ledger
from tests.factories import RegistrationFactory


async def _booked(ops_db, member, make_occurrence, clock):
    occurrence = await make_occurrence()
    registration = await booking_ops.book(
        ops_db, member.id, occurrence.id, clock=clock
    )
    return registration.id, registration.qr_code


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_in_returns_checkin_and_balance(
    ops_db, member, subscription, make_occurrence, clock, policy
):
    registration_id, code = await _booked(ops_db, member, make_occurrence, clock)

    result = await checkin_ops.check_in(ops_db, code, clock=clock, policy=policy)

    assert result.member_id == member.id
    assert result.registration.id == registration_id
    assert result.registration.status == RegistrationStatus.ATTENDED
    assert result.checkin.registration_id == registration_id
    assert result.sessions_remaining == 9


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_code(ops_db, clock, policy):
    with pytest.raises(CodeNotFound):
        await checkin_ops.check_in(ops_db, "no-such-code", clock=clock, policy=policy)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancelled_code_never_checks_in(
    ops_db, member, subscription, make_occurrence, clock, policy
):
    registration_id, code = await _booked(ops_db, member, make_occurrence, clock)
    await booking_ops.cancel(
        ops_db, member.id, registration_id, clock=clock, policy=policy
    )

    with pytest.raises(CodeNotFound):
        await checkin_ops.check_in(ops_db, code, clock=clock, policy=policy)
    with pytest.raises(CodeNotFound):
        await checkin_ops.check_in(
            ops_db, code, clock=clock, policy=ChargePolicy(debit_on_attend=True)
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_scan_is_already_checked_in(
    ops_db, member, subscription, make_occurrence, clock, policy
):
    _, code = await _booked(ops_db, member, make_occurrence, clock)
    await checkin_ops.check_in(ops_db, code, clock=clock, policy=policy)

    with pytest.raises(AlreadyCheckedIn) as exc_info:
        await checkin_ops.check_in(ops_db, code, clock=clock, policy=policy)

    assert exc_info.value.context["member_id"] == member.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_absent_registration_cannot_check_in(
    db_session, ops_db, member, make_occurrence, clock, policy
):
    occurrence = await make_occurrence()
    registration = RegistrationFactory.create(
        member_id=member.id,
        occurrence_id=occurrence.id,
        status=RegistrationStatus.ABSENT,
    )
    db_session.add(registration)
    await db_session.commit()

    with pytest.raises(InvalidTransition):
        await checkin_ops.check_in(
            ops_db, registration.qr_code, clock=clock, policy=policy
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_consuming_check_in_requires_balance(
    db_session, ops_db, member, subscription, make_occurrence, clock
):
    _, code = await _booked(ops_db, member, make_occurrence, clock)
    subscription.sessions_remaining = 0
    await db_session.commit()

    with pytest.raises(InsufficientBalance):
        await checkin_ops.check_in(
            ops_db, code, clock=clock, policy=ChargePolicy(debit_on_attend=True)
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_consuming_check_in_requires_active_subscription(
    db_session, ops_db, member, subscription, make_occurrence, clock
):
    _, code = await _booked(ops_db, member, make_occurrence, clock)
    subscription.status = SubscriptionStatus.EXPIRED
    await db_session.commit()

    with pytest.raises(NoActiveSubscription):
        await checkin_ops.check_in(
            ops_db, code, clock=clock, policy=ChargePolicy(debit_on_attend=True)
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_free_check_in_ignores_empty_balance(
    db_session, ops_db, member, subscription, make_occurrence, clock, policy
):
    _, code = await _booked(ops_db, member, make_occurrence, clock)
    subscription.sessions_remaining = 0
    await db_session.commit()

    result = await checkin_ops.check_in(ops_db, code, clock=clock, policy=policy)

    assert result.checkin.session_consumed is False
    assert result.sessions_remaining == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_consuming_check_in_debits(
    db_session, ops_db, member, subscription, make_occurrence, clock
):
    _, code = await _booked(ops_db, member, make_occurrence, clock)

    result = await checkin_ops.check_in(
        ops_db, code, clock=clock, policy=ChargePolicy(debit_on_attend=True)
    )

    assert result.checkin.session_consumed is True
    assert result.sessions_remaining == 8
    assert await ledger.get_balance(db_session, subscription.id) == 8
