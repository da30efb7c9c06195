from datetime import datetime, timedelta, timezone

import pytest
import pytz

from app.services.recurrence import add_months, occurrences


CHICAGO = pytz.timezone("America/Chicago")


def test_add_months_clamps_day():
    assert add_months(datetime(2027, 1, 31, 20), 1) == datetime(2027, 2, 28, 20)
    assert add_months(datetime(2028, 1, 31, 20), 1) == datetime(2028, 2, 29, 20)
    assert add_months(datetime(2027, 1, 31), 3) == datetime(2027, 4, 30)
    assert add_months(datetime(2027, 11, 15), 3) == datetime(2028, 2, 15)


def test_single_occurrence_is_the_submitted_range():
    start = datetime(2027, 5, 7, 1, tzinfo=timezone.utc)
    end = start + timedelta(hours=3)
    assert occurrences(start, end, "weekly", 1) == [(start, end)]


def test_weekly_keeps_wall_clock_across_dst():
    # Friday 8pm Chicago, two weeks before DST starts on 2027-03-14
    local = CHICAGO.localize(datetime(2027, 3, 5, 20))
    start = local.astimezone(timezone.utc)
    end = start + timedelta(hours=4)

    series = occurrences(start, end, "weekly", 4, "America/Chicago")
    assert len(series) == 4
    for i, (s, e) in enumerate(series):
        wall = s.astimezone(CHICAGO)
        assert (wall.hour, wall.minute) == (20, 0)
        assert wall.date() == (datetime(2027, 3, 5) + timedelta(weeks=i)).date()
        assert e - s == timedelta(hours=4)
    # UTC offset shifts by one hour after the change
    assert series[0][0].hour == 2
    assert series[2][0].hour == 1


def test_monthly_from_month_end():
    local = CHICAGO.localize(datetime(2027, 1, 31, 20))
    start = local.astimezone(timezone.utc)
    series = occurrences(start, start + timedelta(hours=2), "monthly", 4, "America/Chicago")
    days = [s.astimezone(CHICAGO).date().isoformat() for s, _ in series]
    assert days == ["2027-01-31", "2027-02-28", "2027-03-31", "2027-04-30"]


def test_naive_start_is_utc():
    start = datetime(2027, 6, 1, 18)
    series = occurrences(start, start + timedelta(hours=1), "weekly", 2)
    assert series[1][0] == datetime(2027, 6, 8, 18, tzinfo=timezone.utc)


@pytest.mark.parametrize("frequency,count", [("daily", 2), ("weekly", 0)])
def test_invalid_arguments(frequency, count):
    start = datetime(2027, 6, 1, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        occurrences(start, start + timedelta(hours=1), frequency, count)
