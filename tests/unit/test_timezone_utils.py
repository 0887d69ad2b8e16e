from datetime import date, datetime, time, timezone, timedelta

import pytest

from app.core.timezone_utils import (
    convert_gym_time_to_utc,
    ensure_utc,
    gym_local_date,
    local_slot_to_utc,
)


def test_local_slot_to_utc_winter():
    # 18:00 en El Cairo en enero (EET, UTC+2)
    utc_dt = local_slot_to_utc(date(2026, 1, 5), time(18, 0), 'Africa/Cairo')
    assert utc_dt == datetime(2026, 1, 5, 16, 0, tzinfo=timezone.utc)


def test_local_slot_to_utc_summer():
    # 18:00 en El Cairo en julio (EEST, UTC+3)
    utc_dt = local_slot_to_utc(date(2026, 7, 6), time(18, 0), 'Africa/Cairo')
    assert utc_dt == datetime(2026, 7, 6, 15, 0, tzinfo=timezone.utc)


def test_convert_gym_time_rejects_aware_input():
    with pytest.raises(ValueError):
        convert_gym_time_to_utc(datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc), 'Africa/Cairo')


def test_ensure_utc_naive_and_aware():
    naive = datetime(2026, 1, 5, 10, 0)
    aware = datetime(2026, 1, 5, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(naive) == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert ensure_utc(aware).hour == 10
    assert ensure_utc(aware).tzinfo == timezone.utc
    assert ensure_utc(None) is None


def test_gym_local_date_crosses_midnight():
    # 23:30 UTC del 4 de enero ya es 5 de enero en El Cairo
    instant = datetime(2026, 1, 4, 23, 30, tzinfo=timezone.utc)
    assert gym_local_date(instant, 'Africa/Cairo') == date(2026, 1, 5)
    assert gym_local_date(instant, 'UTC') == date(2026, 1, 4)
