import datetime

from spendtrack.config import Category, Currency, Frequency
from spendtrack.models import Expense, RecurringRule
from spendtrack.ui import components


def test_identical_expenses_get_separate_choices():
    exs = [
        Expense(id=i, expense_date="2024-04-02", category=Category.FOOD, amount=5.0, currency=Currency.MKD)
        for i in ("a", "b")
    ]
    choices = components.expense_choices(exs)
    assert list(choices) == ["a", "b"]
    assert choices["a"] == "#a 2024-04-02 Food 5.00 MKD"
    assert choices["a"] != choices["b"]


def test_identical_rules_get_separate_choices():
    rules = [
        RecurringRule(id=i, name="Rent", frequency=Frequency.MONTHLY, next_due_date="2024-05-01")
        for i in ("r1", "r2")
    ]
    choices = components.rule_choices(rules)
    assert list(choices) == ["r1", "r2"]
    assert choices["r1"] == "#r1 Rent (monthly, next 2024-05-01)"


def test_date_or_today_falls_back_to_utc_date(monkeypatch):
    monkeypatch.setattr(components, "utc_today", lambda: datetime.date(2024, 1, 1))
    assert components._date_or_today("not a date") == datetime.date(2024, 1, 1)
    assert components._date_or_today("2024-03-05") == datetime.date(2024, 3, 5)
