"""
models.py - Data model definitions

Defines the Expense and RecurringRule dataclasses used across the tracker,
the materializer and the UI. Both serialize to/from plain dicts, which is the
record shape the store backends read and write.

Enumerated fields (category, currency, frequency) are parsed into the closed
types from spendtrack.config at this boundary, so the rest of the code never
carries open strings for them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from spendtrack.config import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    Category,
    Currency,
    Frequency,
)
from spendtrack.dates import format_date, parse_date


class ValidationError(ValueError):
    """Malformed or missing user input, rejected before any store call."""


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _optional_str(value: Any) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


@dataclass
class Expense:
    """
    A single spending event.

    Fields:
      - id: opaque identifier assigned by the store ("" until inserted)
      - expense_date: ISO date string "YYYY-MM-DD"
      - category / currency: closed enumerations
      - amount: positive amount in `currency`
      - description: optional free text (at most 200 characters)
      - recurring_expense_id: id of the RecurringRule that generated it, if any
      - created_at: store-assigned timestamp, used as a secondary sort key
    """
    expense_date: str = ""
    category: Category = Category.default()
    amount: float = 0.0
    currency: Currency = Currency.default()
    description: str = ""
    recurring_expense_id: Optional[str] = None
    id: str = ""
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "expense_date": self.expense_date,
            "category": self.category.value,
            "amount": self.amount,
            "currency": self.currency.value,
            "description": self.description,
            "recurring_expense_id": self.recurring_expense_id,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Expense":
        """
        Construct an Expense from a store record (inverse of to_dict).
        Missing keys get defaults and numbers may arrive as strings.
        """
        return Expense(
            id=str(d.get("id", "") or ""),
            expense_date=str(d.get("expense_date", "") or "")[:10],
            category=Category.parse(d.get("category")),
            amount=_to_float(d.get("amount", 0.0)),
            currency=Currency.parse(d.get("currency")),
            description=str(d.get("description", "") or ""),
            recurring_expense_id=_optional_str(d.get("recurring_expense_id")),
            created_at=str(d.get("created_at", "") or ""),
        )


@dataclass
class RecurringRule:
    """A template that periodically produces Expenses."""
    name: str = ""
    category: Category = Category.default()
    amount: float = 0.0
    currency: Currency = Currency.default()
    frequency: Frequency = Frequency.default()
    next_due_date: str = ""
    id: str = ""
    created_at: str = ""

    def expense_payload(self, due_date) -> Dict[str, Any]:
        """Record for the expense generated on `due_date`."""
        return {
            "expense_date": format_date(parse_date(due_date)),
            "category": self.category.value,
            "amount": self.amount,
            "currency": self.currency.value,
            "description": f"Recurring: {self.name}",
            "recurring_expense_id": self.id,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "amount": self.amount,
            "currency": self.currency.value,
            "frequency": self.frequency.value,
            "next_due_date": self.next_due_date,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RecurringRule":
        return RecurringRule(
            id=str(d.get("id", "") or ""),
            name=str(d.get("name", "") or ""),
            category=Category.parse(d.get("category")),
            amount=_to_float(d.get("amount", 0.0)),
            currency=Currency.parse(d.get("currency")),
            frequency=Frequency.parse(d.get("frequency")),
            next_due_date=str(d.get("next_due_date", "") or "")[:10],
            created_at=str(d.get("created_at", "") or ""),
        )


def _validated_date(value: Any) -> str:
    if not value:
        raise ValidationError("Date is required.")
    try:
        return format_date(parse_date(value))
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}.")


def _validated_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number.")
    if not amount > 0:
        raise ValidationError("Amount must be greater than 0.")
    return round(amount, 2)


def validate_expense_input(expense_date, category, amount, currency, description="") -> Dict[str, Any]:
    """
    Check a user-entered expense and return the normalized store record.
    Raises ValidationError; nothing is written on failure.
    """
    description = (description or "").strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters.")
    return {
        "expense_date": _validated_date(expense_date),
        "category": Category.parse(category).value,
        "amount": _validated_amount(amount),
        "currency": Currency.parse(currency).value,
        "description": description,
    }


def validate_rule_input(name, category, amount, currency, frequency, next_due_date) -> Dict[str, Any]:
    """Same as validate_expense_input, for recurring rules."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required.")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters.")
    return {
        "name": name,
        "category": Category.parse(category).value,
        "amount": _validated_amount(amount),
        "currency": Currency.parse(currency).value,
        "frequency": Frequency.parse(frequency).value,
        "next_due_date": _validated_date(next_due_date),
    }
