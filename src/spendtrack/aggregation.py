"""
aggregation.py - filtering, totals and chart series over fetched expenses

Pure functions: they take the in-memory expense list (replaced wholesale on
every refresh) plus a ViewState, and never touch the store or the UI.
Sums are plain float accumulation; results are for display, not accounting.
"""

import datetime
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from spendtrack.config import RATE_TO_USD
from spendtrack.currency import convert, normalize_currency
from spendtrack.dates import current_month_key, parse_date, period_key, utc_today
from spendtrack.models import Expense
from spendtrack.state import ViewState


@dataclass
class ConvertedExpense:
    """An expense with its amount expressed in the base currency."""
    expense: Expense
    currency: str
    original_amount: float
    base_amount: float

    @property
    def expense_date(self) -> str:
        return self.expense.expense_date

    @property
    def category(self) -> str:
        return self.expense.category.value


@dataclass
class Summary:
    total: float = 0.0
    current_month_total: float = 0.0
    entries: int = 0


@dataclass
class PeriodRow:
    period: str
    total: float
    entries: int


@dataclass
class PeriodStats:
    rows: List[PeriodRow] = field(default_factory=list)
    best: Optional[PeriodRow] = None
    average: float = 0.0


@dataclass
class DashboardView:
    """Everything the dashboard renders for one ViewState."""
    months: List[str]
    rows: List[ConvertedExpense]
    summary: Summary
    stats: PeriodStats
    by_category: Dict[str, float]
    by_date: Dict[str, float]


def _value(x) -> str:
    return str(getattr(x, "value", x) or "")


def _has_valid_date(date_str: str) -> bool:
    # rows edited by hand in the sheet or data file may carry any text here
    try:
        parse_date(date_str)
    except ValueError:
        return False
    return True


def available_months(expenses: Iterable[Expense]) -> List[str]:
    """Distinct "YYYY-MM" values, newest first."""
    return sorted({e.expense_date[:7] for e in expenses if _has_valid_date(e.expense_date)}, reverse=True)


def filter_expenses(
    expenses: Iterable[Expense],
    category=None,
    month: Optional[str] = None,
    query: str = "",
) -> List[Expense]:
    """
    Keep expenses matching every given filter (missing filter = match all):
      - category: exact match
      - month: expense_date starts with this prefix
      - query: case-insensitive substring of "category description date currency"
    """
    wanted_category = _value(category)
    lowered = (query or "").strip().lower()
    out: List[Expense] = []
    for e in expenses:
        if wanted_category and e.category.value != wanted_category:
            continue
        if month and not e.expense_date.startswith(month):
            continue
        if lowered:
            text = f"{e.category.value} {e.description or ''} {e.expense_date} {normalize_currency(e.currency)}"
            if lowered not in text.lower():
                continue
        out.append(e)
    return out


def convert_expenses(
    expenses: Iterable[Expense],
    base_currency,
    rates: Optional[Dict[str, float]] = None,
) -> List[ConvertedExpense]:
    out: List[ConvertedExpense] = []
    for e in expenses:
        currency = normalize_currency(e.currency)
        amount = float(e.amount)
        out.append(
            ConvertedExpense(
                expense=e,
                currency=currency,
                original_amount=amount,
                base_amount=convert(amount, currency, base_currency, rates),
            )
        )
    return out


def summarize(rows: List[ConvertedExpense], today: Optional[datetime.date] = None) -> Summary:
    month = current_month_key(today or utc_today())
    total = sum(r.base_amount for r in rows)
    month_total = sum(r.base_amount for r in rows if r.expense_date.startswith(month))
    return Summary(total=total, current_month_total=month_total, entries=len(rows))


def period_stats(rows: List[ConvertedExpense], granularity) -> PeriodStats:
    """
    Totals and counts per period key, most recent period first.
    Rows whose date does not parse are left out of every period.
    best is the highest total (first one wins on ties); average is the mean
    of period totals.
    """
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for r in rows:
        if not _has_valid_date(r.expense_date):
            continue
        key = period_key(r.expense_date, granularity)
        totals[key] += r.base_amount
        counts[key] += 1

    period_rows = [PeriodRow(period=k, total=totals[k], entries=counts[k]) for k in sorted(totals, reverse=True)]
    if not period_rows:
        return PeriodStats()
    best = period_rows[0]
    for row in period_rows[1:]:
        if row.total > best.total:
            best = row
    average = sum(r.total for r in period_rows) / len(period_rows)
    return PeriodStats(rows=period_rows, best=best, average=average)


def category_series(rows: List[ConvertedExpense]) -> Dict[str, float]:
    """Base-currency total per category, in order of first occurrence."""
    totals: Dict[str, float] = {}
    for r in rows:
        totals[r.category] = totals.get(r.category, 0.0) + r.base_amount
    return totals


def date_series(rows: List[ConvertedExpense]) -> Dict[str, float]:
    """Base-currency total per exact date, oldest first."""
    totals: Dict[str, float] = defaultdict(float)
    for r in rows:
        if not _has_valid_date(r.expense_date):
            continue
        totals[r.expense_date] += r.base_amount
    return {d: totals[d] for d in sorted(totals)}


def build_view(
    expenses: List[Expense],
    state: ViewState,
    rates: Optional[Dict[str, float]] = None,
    today: Optional[datetime.date] = None,
) -> DashboardView:
    rates = rates if rates is not None else RATE_TO_USD
    filtered = filter_expenses(expenses, category=state.category, month=state.month, query=state.query)
    rows = convert_expenses(filtered, state.base_currency, rates)
    return DashboardView(
        months=available_months(expenses),
        rows=rows,
        summary=summarize(rows, today),
        stats=period_stats(rows, state.granularity),
        by_category=category_series(rows),
        by_date=date_series(rows),
    )
