import datetime

import pytest

from spendtrack.dates import (
    add_days,
    add_one_month,
    add_one_year,
    advance_by_frequency,
    iso_week_key,
    parse_date,
    period_key,
)

d = datetime.date.fromisoformat


def test_add_one_month_clamps_to_month_end():
    assert add_one_month(d("2024-01-31")) == d("2024-02-29")
    assert add_one_month(d("2023-01-31")) == d("2023-02-28")
    assert add_one_month(d("2024-03-31")) == d("2024-04-30")
    assert add_one_month(d("2024-01-15")) == d("2024-02-15")


def test_add_one_month_wraps_year():
    assert add_one_month(d("2023-12-31")) == d("2024-01-31")


def test_add_one_year_handles_leap_day():
    assert add_one_year(d("2024-02-29")) == d("2025-02-28")
    assert add_one_year(d("2023-06-10")) == d("2024-06-10")


def test_add_days_crosses_year():
    assert add_days(d("2023-12-28"), 7) == d("2024-01-04")


def test_weekly_advance_52_times():
    start = d("2024-01-01")
    assert start.weekday() == 0
    cur = start
    for _ in range(52):
        cur = advance_by_frequency(cur, "weekly")
    assert cur - start == datetime.timedelta(days=364)


def test_unknown_frequency_defaults_to_monthly():
    assert advance_by_frequency(d("2024-01-31"), "fortnightly") == d("2024-02-29")
    assert advance_by_frequency(d("2024-01-31"), "yearly") == d("2025-01-31")


def test_iso_week_key_year_boundaries():
    assert iso_week_key(d("2021-01-01")) == "2020-W53"
    assert iso_week_key(d("2024-12-30")) == "2025-W01"
    assert iso_week_key(d("2024-03-05")) == "2024-W10"


def test_period_key():
    assert period_key("2024-03-05", "weekly") == "2024-W10"
    assert period_key("2024-03-05", "monthly") == "2024-03"
    assert period_key("2024-03-05", "yearly") == "2024"
    assert period_key("2024-03-05", "bogus") == "2024-03"


def test_parse_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_date("not-a-date")
    with pytest.raises(ValueError):
        parse_date("")
