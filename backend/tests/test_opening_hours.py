from datetime import datetime, timezone

from services.opening_hours import (
    evaluate_google_hours,
    evaluate_radar_hours,
    google_open_now,
    radar_open_now,
    radar_weekday_text,
)

# 2024-01-01 is a Monday.
MONDAY_10 = datetime(2024, 1, 1, 10, 0)
MONDAY_18 = datetime(2024, 1, 1, 18, 0)
SATURDAY_01 = datetime(2024, 1, 6, 1, 0)
SUNDAY_01 = datetime(2024, 1, 7, 1, 0)

MONDAY_9_TO_5 = [{"open": {"day": 1, "time": "0900"}, "close": {"day": 1, "time": "1700"}}]


def test_google_periods_open_and_closed():
    assert google_open_now(MONDAY_9_TO_5, MONDAY_10) is True
    assert google_open_now(MONDAY_9_TO_5, MONDAY_18) is False


def test_google_always_open():
    assert google_open_now([{"open": {"day": 0, "time": "0000"}}], MONDAY_18) is True


def test_google_overnight_and_week_wrap():
    friday_late = [{"open": {"day": 5, "time": "2200"}, "close": {"day": 6, "time": "0200"}}]
    assert google_open_now(friday_late, SATURDAY_01) is True
    saturday_late = [{"open": {"day": 6, "time": "2200"}, "close": {"day": 0, "time": "0200"}}]
    assert google_open_now(saturday_late, SUNDAY_01) is True


def test_google_malformed_periods_return_none():
    assert google_open_now([{"open": {"day": 9, "time": "xx"}}], MONDAY_10) is None
    assert google_open_now("nope", MONDAY_10) is None
    assert google_open_now([], MONDAY_10) is None


def test_google_hours_fall_back_to_provider_flag():
    hours = evaluate_google_hours(
        {"open_now": False, "periods": [{"bad": 1}], "weekday_text": ["Monday: Closed"]},
        MONDAY_10,
    )
    assert hours.open_now is False
    assert hours.weekday_text == ["Monday: Closed"]


def test_google_hours_unknown_is_none_not_error():
    hours = evaluate_google_hours({"weekday_text": "garbage"}, MONDAY_10)
    assert hours.open_now is None
    assert hours.weekday_text == []
    assert evaluate_google_hours(None, MONDAY_10) is None


def test_google_hours_use_place_utc_offset():
    now_utc = datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc)
    assert evaluate_google_hours({"periods": MONDAY_9_TO_5}, now_utc, -300).open_now is True
    assert evaluate_google_hours({"periods": MONDAY_9_TO_5}, now_utc, -360).open_now is False


def _radar_week(**days):
    names = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
    return [days.get(name, []) for name in names]


def test_radar_open_now():
    hours = _radar_week(monday=[{"start": "09:00", "end": "17:00"}])
    assert radar_open_now(hours, MONDAY_10) is True
    assert radar_open_now(hours, MONDAY_18) is False


def test_radar_overnight_from_previous_day():
    hours = _radar_week(friday=[{"start": "20:00", "end": "02:00"}])
    assert radar_open_now(hours, SATURDAY_01) is True


def test_radar_weekday_text_monday_first():
    lines = radar_weekday_text(_radar_week(monday=[{"start": "09:00", "end": "17:00"}]))
    assert lines[0] == "Monday: 09:00-17:00"
    assert lines[-1] == "Sunday: Closed"
    assert len(lines) == 7


def test_radar_malformed_hours():
    assert radar_open_now(_radar_week(monday=[{"start": "nine"}]), MONDAY_10) is None
    hours = evaluate_radar_hours("garbage", MONDAY_10)
    assert hours.open_now is None
    assert hours.weekday_text == []
    assert evaluate_radar_hours(None, MONDAY_10) is None
