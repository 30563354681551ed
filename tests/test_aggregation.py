import datetime

import pytest

from spendtrack.aggregation import (
    available_months,
    build_view,
    category_series,
    convert_expenses,
    date_series,
    filter_expenses,
    period_stats,
    summarize,
)
from spendtrack.config import Category, Currency, Frequency
from spendtrack.models import Expense
from spendtrack.state import ViewState, initial_state


def _e(day, amount, category="Food", currency="MKD", description=""):
    return Expense(
        expense_date=day,
        category=Category.parse(category),
        amount=amount,
        currency=Currency.parse(currency),
        description=description,
    )


@pytest.fixture
def expenses():
    return [
        _e("2024-01-05", 100, "Food", description="Groceries"),
        _e("2024-01-20", 50, "Transport", "EUR", "Taxi to airport"),
        _e("2024-02-03", 30, "Food", "USD", "Pizza"),
        _e("2024-02-03", 20, "Other"),
        _e("2023-12-31", 10, "Transport", description="Bus"),
    ]


def test_available_months_newest_first(expenses):
    assert available_months(expenses) == ["2024-02", "2024-01", "2023-12"]


def test_filter_by_category_month_and_query(expenses):
    assert len(filter_expenses(expenses, category="Food")) == 2
    assert len(filter_expenses(expenses, category=Category.TRANSPORT, month="2024-01")) == 1
    assert [e.description for e in filter_expenses(expenses, query="  PIZZA ")] == ["Pizza"]
    # query also matches currency and date text
    assert len(filter_expenses(expenses, query="eur")) == 1
    assert len(filter_expenses(expenses, query="2024-02-03")) == 2
    assert filter_expenses(expenses, category="Food", query="taxi") == []


def test_no_filters_match_all(expenses):
    assert filter_expenses(expenses) == expenses


def test_filter_is_idempotent(expenses):
    once = filter_expenses(expenses, category="Food", month="2024", query="a")
    twice = filter_expenses(once, category="Food", month="2024", query="a")
    assert once == twice


def test_convert_expenses_to_base(expenses):
    rows = convert_expenses(expenses, "USD")
    assert rows[0].base_amount == pytest.approx(100 * 0.0176)
    assert rows[1].base_amount == pytest.approx(54.0)
    assert rows[2].base_amount == 30
    assert rows[1].original_amount == 50
    assert rows[1].currency == "EUR"


def test_summary_current_month():
    rows = convert_expenses([_e("2024-04-01", 10), _e("2024-04-30", 5), _e("2024-03-31", 7)], "MKD")
    summary = summarize(rows, today=datetime.date(2024, 4, 15))
    assert summary.total == pytest.approx(22)
    assert summary.current_month_total == pytest.approx(15)
    assert summary.entries == 3


def test_period_stats_monthly(expenses):
    rows = convert_expenses(expenses, "MKD")
    stats = period_stats(rows, "monthly")
    assert [r.period for r in stats.rows] == ["2024-02", "2024-01", "2023-12"]
    assert [r.entries for r in stats.rows] == [2, 2, 1]
    assert stats.best.period == "2024-01"
    assert stats.average == pytest.approx(sum(r.total for r in stats.rows) / 3)


def test_period_stats_totals_match_summary(expenses):
    rows = convert_expenses(expenses, "EUR")
    total = summarize(rows, today=datetime.date(2024, 2, 10)).total
    for granularity in Frequency:
        stats = period_stats(rows, granularity)
        assert sum(r.total for r in stats.rows) == pytest.approx(total)


def test_period_stats_weekly_and_yearly(expenses):
    rows = convert_expenses(expenses, "MKD")
    weekly = period_stats(rows, "weekly")
    # 2023-12-31 is a Sunday, part of ISO week 2023-W52
    assert weekly.rows[-1].period == "2023-W52"
    yearly = period_stats(rows, Frequency.YEARLY)
    assert [r.period for r in yearly.rows] == ["2024", "2023"]


def test_best_period_tie_goes_to_most_recent():
    rows = convert_expenses([_e("2024-01-01", 10), _e("2024-02-01", 10), _e("2023-05-01", 3)], "MKD")
    stats = period_stats(rows, "monthly")
    assert stats.best.period == "2024-02"


def test_period_stats_empty():
    stats = period_stats([], "monthly")
    assert stats.rows == []
    assert stats.best is None
    assert stats.average == 0


def test_category_series_keeps_first_occurrence_order(expenses):
    series = category_series(convert_expenses(expenses, "MKD"))
    assert list(series) == ["Food", "Transport", "Other"]
    assert series["Other"] == 20


def test_date_series_sorted_ascending(expenses):
    series = date_series(convert_expenses(expenses, "MKD"))
    assert list(series) == ["2023-12-31", "2024-01-05", "2024-01-20", "2024-02-03"]
    assert series["2024-02-03"] == pytest.approx(30 * 1.0 / 0.0176 + 20)


def test_build_view_uses_state(expenses):
    state = ViewState(base_currency=Currency.MKD, category=Category.FOOD, granularity=Frequency.YEARLY)
    view = build_view(expenses, state, today=datetime.date(2024, 2, 10))
    assert view.months == ["2024-02", "2024-01", "2023-12"]
    assert view.summary.entries == 2
    assert [r.period for r in view.stats.rows] == ["2024"]
    assert list(view.by_category) == ["Food"]


def test_view_state_round_trip_and_reset():
    state = ViewState.from_dict({"base_currency": "EUR", "category": "Transport", "month": "2024-01",
                                 "query": "taxi", "granularity": "weekly"})
    assert ViewState.from_dict(state.to_dict()) == state
    cleared = state.reset_filters()
    assert cleared.category is None and cleared.month is None and cleared.query == ""
    assert cleared.base_currency is Currency.EUR
    assert ViewState.from_dict({}).granularity is Frequency.MONTHLY


def test_malformed_dates_left_out_of_periods_and_series():
    expenses = [_e("2024-01-15", 10), _e("15/01/2024", 5), _e("", 1)]
    rows = convert_expenses(expenses, "MKD")
    assert available_months(expenses) == ["2024-01"]
    for granularity in Frequency:
        stats = period_stats(rows, granularity)
        assert len(stats.rows) == 1
        assert stats.rows[0].total == pytest.approx(10)
    assert date_series(rows) == {"2024-01-15": pytest.approx(10)}


def test_build_view_weekly_with_malformed_date():
    expenses = [_e("2024-01-15", 10), _e("15/01/2024", 5)]
    view = build_view(expenses, ViewState(granularity=Frequency.WEEKLY), today=datetime.date(2024, 1, 20))
    assert [r.period for r in view.stats.rows] == ["2024-W03"]
    # still counted in the overall summary
    assert view.summary.total == pytest.approx(15)
    assert view.summary.entries == 2


def test_initial_state_prefers_session_then_url_base_currency():
    stored = ViewState(base_currency=Currency.USD, query="taxi").to_dict()
    assert initial_state(stored, {"base": "EUR"}).base_currency is Currency.USD
    fresh = initial_state(None, {"base": "EUR"})
    assert fresh.base_currency is Currency.EUR
    assert fresh.query == ""
    assert initial_state({}, {}).base_currency is Currency.MKD
