"""
state.py - explicit dashboard view state

The dashboard keeps one ViewState in st.session_state and passes it to the
aggregation functions, which never read UI globals themselves.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from spendtrack.config import Category, Currency, Frequency


@dataclass
class ViewState:
    """
    Filters and display options.

      - base_currency: currency all amounts are converted to
      - category / month: exact category, "YYYY-MM" prefix; None means all
      - query: free-text search, case-insensitive
      - granularity: period bucket for statistics (weekly/monthly/yearly)
    """
    base_currency: Currency = Currency.default()
    category: Optional[Category] = None
    month: Optional[str] = None
    query: str = ""
    granularity: Frequency = Frequency.MONTHLY

    def reset_filters(self) -> "ViewState":
        return replace(self, category=None, month=None, query="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_currency": self.base_currency.value,
            "category": self.category.value if self.category else None,
            "month": self.month,
            "query": self.query,
            "granularity": self.granularity.value,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ViewState":
        category = d.get("category")
        return ViewState(
            base_currency=Currency.parse(d.get("base_currency")),
            category=Category.parse(category) if category else None,
            month=(str(d.get("month") or "").strip() or None),
            query=str(d.get("query", "") or ""),
            granularity=Frequency.parse(d.get("granularity")),
        )


BASE_CURRENCY_PARAM = "base"


def initial_state(stored: Optional[Dict[str, Any]], params) -> ViewState:
    """
    The session's ViewState if it has one. A new session (page reload) starts
    from defaults but keeps the base currency carried in the URL query params.
    """
    if stored:
        return ViewState.from_dict(stored)
    return ViewState.from_dict({"base_currency": params.get(BASE_CURRENCY_PARAM)})
