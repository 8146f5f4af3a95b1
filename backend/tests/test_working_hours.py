from datetime import date, datetime, timezone

import pytest

from app.scheduling.clock import format_minutes, hours_until_start, parse_hhmm
from app.scheduling.working_hours import parse_working_hours, resolve_day


MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)


def test_resolve_day_uses_weekday_names():
    hours = {"monday": {"is_open": True, "open": "09:00", "close": "17:00"}}

    day = resolve_day(hours, MONDAY)

    assert day.is_open is True
    assert day.open_minute == 9 * 60
    assert day.close_minute == 17 * 60


def test_resolve_day_uses_monday_zero_indices():
    hours = {"0": {"isOpen": True, "open": "10:30", "close": "12:00"}}

    assert resolve_day(hours, MONDAY).open_minute == 630
    assert resolve_day(hours, date(2026, 3, 3)).is_open is False


def test_missing_weekday_is_closed():
    assert resolve_day({}, FRIDAY).is_open is False
    assert resolve_day(None, FRIDAY).is_open is False


def test_closed_flag_wins_over_times():
    hours = {"friday": {"is_open": False, "open": "09:00", "close": "17:00"}}

    day = resolve_day(hours, FRIDAY)

    assert day.is_open is False
    assert day.open_minute == 0
    assert day.close_minute == 0


def test_close_may_be_end_of_day():
    hours = parse_working_hours({"monday": {"is_open": True, "open": "18:00", "close": "24:00"}})

    assert hours.for_date(MONDAY).close_minute == 1440


def test_open_after_close_is_rejected():
    with pytest.raises(ValueError):
        parse_working_hours({"monday": {"is_open": True, "open": "17:00", "close": "09:00"}})


def test_unknown_weekday_key_is_rejected():
    with pytest.raises(ValueError):
        parse_working_hours({"someday": {"is_open": True}})


def test_parse_and_format_hhmm():
    assert parse_hhmm("00:00") == 0
    assert parse_hhmm("9:05") == 545
    assert parse_hhmm("23:59") == 1439
    assert format_minutes(545) == "09:05"
    assert format_minutes(1440) == "24:00"


@pytest.mark.parametrize("text", ["24:00", "12:60", "noon", "", "7"])
def test_parse_hhmm_rejects_bad_labels(text):
    with pytest.raises(ValueError):
        parse_hhmm(text)


def test_hours_until_start_respects_business_timezone():
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    # 09:00 in Riyadh (UTC+3) on Monday is 06:00 UTC, 18 hours after now.
    assert hours_until_start(MONDAY, 9 * 60, "Asia/Riyadh", now) == pytest.approx(18.0)
    assert hours_until_start(MONDAY, 9 * 60, "UTC", now) == pytest.approx(21.0)
