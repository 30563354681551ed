"""
config.py - static configuration consumed by the core and the UI

Contains the recognized enumerations (categories, currencies, frequencies),
the static exchange-rate table and the backend settings read from the
environment. app.py copies Streamlit secrets into the environment before this
module is used, so the same variables work locally and on Streamlit Cloud.

Values arriving from the store or from forms are parsed into the closed
enumerations with Enum.parse(); anything unrecognized falls back to the
enumeration's default instead of being rejected.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class _ClosedEnum(str, Enum):

    @classmethod
    def parse(cls, value):
        raw = str(getattr(value, "value", value) or "").strip()
        for member in cls:
            if member.value == raw:
                return member
        return cls.default()

    @classmethod
    def default(cls):
        return next(iter(cls))

    def __str__(self):
        return self.value


class Category(_ClosedEnum):
    FOOD = "Food"
    TRANSPORT = "Transport"
    OTHER = "Other"


class Currency(_ClosedEnum):
    MKD = "MKD"
    EUR = "EUR"
    USD = "USD"


class Frequency(_ClosedEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def default(cls):
        return cls.MONTHLY


CATEGORIES: List[str] = [c.value for c in Category]
CURRENCIES: List[str] = [c.value for c in Currency]
FREQUENCIES: List[str] = [f.value for f in Frequency]

# units of USD per 1 unit of currency
RATE_TO_USD: Dict[str, float] = {
    "MKD": 0.0176,
    "EUR": 1.08,
    "USD": 1.0,
}

MAX_DESCRIPTION_LENGTH = 200
MAX_NAME_LENGTH = 80

EXPENSES_TABLE = "expenses"
RECURRING_TABLE = "recurring_rules"

_default_data_file = os.path.join(os.path.dirname(__file__), "..", "..", "data", "spendtrack_data.json")


@dataclass
class BackendSettings:
    """Where the record store lives. An empty sheet_id means the local JSON file."""
    sheet_id: str = ""
    service_account_json: str = ""
    service_account_file: str = ""
    data_file: str = _default_data_file

    @classmethod
    def from_env(cls) -> "BackendSettings":
        return cls(
            sheet_id=(os.getenv("GOOGLE_SHEET_ID") or "").strip(),
            service_account_json=(os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or "").strip(),
            service_account_file=(os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE") or "").strip(),
            data_file=(os.getenv("SPENDTRACK_DATA_FILE") or "").strip() or _default_data_file,
        )
