import pytest

from spendtrack.config import Category, Currency, Frequency
from spendtrack.models import (
    Expense,
    RecurringRule,
    ValidationError,
    validate_expense_input,
    validate_rule_input,
)


def test_enum_parse_falls_back_to_defaults():
    assert Category.parse("Groceries") is Category.FOOD
    assert Currency.parse("") is Currency.MKD
    assert Frequency.parse("daily") is Frequency.MONTHLY
    assert Frequency.parse(" weekly ") is Frequency.WEEKLY


def test_expense_from_store_record_with_strings():
    e = Expense.from_dict({
        "id": "abc",
        "expense_date": "2024-02-01",
        "category": "Transport",
        "amount": "12.50",
        "currency": "EUR",
        "description": "",
        "recurring_expense_id": "",
    })
    assert e.amount == 12.5
    assert e.category is Category.TRANSPORT
    assert e.recurring_expense_id is None
    assert Expense.from_dict(e.to_dict()) == e


def test_rule_expense_payload():
    rule = RecurringRule(id="r1", name="Gym", category=Category.OTHER, amount=20.0,
                         currency=Currency.EUR, frequency=Frequency.WEEKLY, next_due_date="2024-01-01")
    assert rule.expense_payload("2024-01-08") == {
        "expense_date": "2024-01-08",
        "category": "Other",
        "amount": 20.0,
        "currency": "EUR",
        "description": "Recurring: Gym",
        "recurring_expense_id": "r1",
    }


def test_validate_expense_input_normalizes():
    payload = validate_expense_input("2024-03-01", "Unknown", "10.5", "XYZ", "  lunch ")
    assert payload == {
        "expense_date": "2024-03-01",
        "category": "Food",
        "amount": 10.5,
        "currency": "MKD",
        "description": "lunch",
    }


@pytest.mark.parametrize("kwargs", [
    dict(expense_date="", amount=1),
    dict(expense_date="2024-13-01", amount=1),
    dict(expense_date="2024-01-01", amount=0),
    dict(expense_date="2024-01-01", amount=-3),
    dict(expense_date="2024-01-01", amount="abc"),
    dict(expense_date="2024-01-01", amount=1, description="x" * 201),
])
def test_validate_expense_input_rejects(kwargs):
    with pytest.raises(ValidationError):
        validate_expense_input(category="Food", currency="EUR", **kwargs)


def test_validate_rule_input_requires_name():
    with pytest.raises(ValidationError):
        validate_rule_input("   ", "Food", 10, "EUR", "monthly", "2024-01-01")
    with pytest.raises(ValidationError):
        validate_rule_input("n" * 81, "Food", 10, "EUR", "monthly", "2024-01-01")
    payload = validate_rule_input(" Rent ", "Food", 10, "EUR", "hourly", "2024-01-01")
    assert payload["name"] == "Rent"
    assert payload["frequency"] == "monthly"
