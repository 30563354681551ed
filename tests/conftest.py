import pytest

from spendtrack.config import RECURRING_TABLE
from spendtrack.store import JsonFileStore


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(str(tmp_path / "data.json"))


@pytest.fixture
def add_rule(store):
    def _add(name="Rent", next_due_date="2024-01-15", frequency="monthly", amount=50.0,
             category="Food", currency="MKD"):
        return store.insert(RECURRING_TABLE, {
            "name": name,
            "category": category,
            "amount": amount,
            "currency": currency,
            "frequency": frequency,
            "next_due_date": next_due_date,
        })
    return _add
