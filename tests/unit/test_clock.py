"""Unit tests for the injectable clock."""

from datetime import datetime, timedelta

import pytest
from libs.common.clock import Clock, FixedClock, SystemClock, get_clock
from libs.common.datetime_utils import studio_tz


@pytest.mark.unit
def test_clock_cannot_be_instantiated_directly():
    with pytest.raises(TypeError):
        Clock()


@pytest.mark.unit
def test_system_clock_is_timezone_aware():
    clock = get_clock()

    assert isinstance(clock, SystemClock)
    assert clock.now().tzinfo is not None


@pytest.mark.unit
def test_fixed_clock_advances():
    start = datetime(2025, 1, 6, 9, 0, tzinfo=studio_tz())
    clock = FixedClock(start)

    assert clock.now() == start
    assert clock.advance(timedelta(hours=2)) == start + timedelta(hours=2)
    assert clock.now() == start + timedelta(hours=2)


@pytest.mark.unit
def test_fixed_clock_rejects_naive_datetimes():
    with pytest.raises(ValueError):
        FixedClock(datetime(2025, 1, 6, 9, 0))
