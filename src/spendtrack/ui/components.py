"""
components.py - reusable Streamlit components / forms / displays

This module contains pure-UI helpers used by the dashboard:
 - display_filters(state, months) -> ViewState
 - display_expense_form / display_recurring_form (call back with input objects)
 - display_summary / display_expense_list / display_period_stats / display_charts
 - display_manage_expenses / display_manage_recurring (edit + delete)

Validation lives in spendtrack.models; forms show its ValidationError
messages with st.error and never write on failure.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List
import datetime

import altair as alt
import pandas as pd
import streamlit as st

from spendtrack.aggregation import ConvertedExpense, PeriodStats, Summary
from spendtrack.config import CATEGORIES, CURRENCIES, FREQUENCIES, MAX_DESCRIPTION_LENGTH, MAX_NAME_LENGTH
from spendtrack.currency import format_amount
from spendtrack.dates import utc_today
from spendtrack.models import ValidationError
from spendtrack.state import ViewState

PERIOD_LABELS = {"weekly": "Week", "monthly": "Month", "yearly": "Year"}


def _trigger_rerun():
    if hasattr(st, "rerun"):
        st.rerun()
    else:
        st.experimental_rerun()


def _index_of(options: List[str], value, default: int = 0) -> int:
    value = str(getattr(value, "value", value) or "")
    return options.index(value) if value in options else default


def _date_or_today(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except (TypeError, ValueError):
        return utc_today()


@dataclass
class ExpenseInput:
    """Lightweight container passed to the on_submit callback."""
    expense_date: str
    category: str
    amount: float
    currency: str
    description: str


@dataclass
class RecurringInput:
    name: str
    category: str
    amount: float
    currency: str
    frequency: str
    next_due_date: str


def display_filters(state: ViewState, months: List[str]) -> ViewState:
    """Sidebar controls; returns the new ViewState built from them."""
    st.sidebar.header("View")
    base_currency = st.sidebar.selectbox(
        "Base currency", options=CURRENCIES, index=_index_of(CURRENCIES, state.base_currency)
    )
    category_options = [""] + CATEGORIES
    category = st.sidebar.selectbox(
        "Category",
        options=category_options,
        index=_index_of(category_options, state.category),
        format_func=lambda c: c or "All categories",
    )
    month_options = [""] + months
    month = st.sidebar.selectbox(
        "Month",
        options=month_options,
        index=_index_of(month_options, state.month),
        format_func=lambda m: m or "All months",
    )
    query = st.sidebar.text_input("Search", value=state.query)
    granularity = st.sidebar.radio(
        "Statistics by",
        options=FREQUENCIES,
        index=_index_of(FREQUENCIES, state.granularity, default=1),
        format_func=lambda g: PERIOD_LABELS[g],
    )
    new_state = ViewState.from_dict({
        "base_currency": base_currency,
        "category": category or None,
        "month": month or None,
        "query": query,
        "granularity": granularity,
    })
    if st.sidebar.button("Reset filters"):
        new_state = new_state.reset_filters()
    return new_state


def display_expense_form(on_submit: Callable[[ExpenseInput], object], default_currency: str):
    """
    Display the 'Add Expense' form.

    on_submit receives an ExpenseInput and may raise ValidationError; a falsy
    return value is reported as a storage failure.
    """
    st.header("Add Expense")
    with st.form(key="expense_form", clear_on_submit=True):
        expense_date = st.date_input("Date", value=utc_today())
        category = st.selectbox("Category", options=CATEGORIES)
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        currency = st.selectbox("Currency", options=CURRENCIES, index=_index_of(CURRENCIES, default_currency))
        description = st.text_input("Description (optional)", max_chars=MAX_DESCRIPTION_LENGTH)
        submitted = st.form_submit_button("Add Expense")

    if submitted:
        payload = ExpenseInput(
            expense_date=expense_date.isoformat() if expense_date else "",
            category=category,
            amount=amount,
            currency=currency,
            description=description,
        )
        try:
            ok = on_submit(payload)
        except ValidationError as exc:
            st.error(str(exc))
            return
        if ok:
            st.success("Expense added.")
        else:
            st.error("Could not save the expense. Check the server logs for details.")


def display_recurring_form(on_submit: Callable[[RecurringInput], object], default_currency: str):
    """Form for a new recurring rule; already-due occurrences are generated on save."""
    st.header("Add Recurring Expense")
    with st.form(key="recurring_form", clear_on_submit=True):
        name = st.text_input("Name", max_chars=MAX_NAME_LENGTH, placeholder="e.g. Rent")
        category = st.selectbox("Category", options=CATEGORIES)
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        currency = st.selectbox("Currency", options=CURRENCIES, index=_index_of(CURRENCIES, default_currency))
        frequency = st.selectbox("Frequency", options=FREQUENCIES, index=1)
        next_due = st.date_input("Next due date", value=utc_today())
        submitted = st.form_submit_button("Add Recurring Expense")

    if submitted:
        payload = RecurringInput(
            name=name,
            category=category,
            amount=amount,
            currency=currency,
            frequency=frequency,
            next_due_date=next_due.isoformat() if next_due else "",
        )
        try:
            ok = on_submit(payload)
        except ValidationError as exc:
            st.error(str(exc))
            return
        if ok:
            st.success("Recurring expense added.")
        else:
            st.error("Could not save the recurring expense.")


def display_summary(summary: Summary, base_currency: str):
    col1, col2, col3 = st.columns(3)
    col1.metric("Total", format_amount(summary.total, base_currency))
    col2.metric("This Month", format_amount(summary.current_month_total, base_currency))
    col3.metric("Entries", summary.entries)


def display_expense_list(rows: List[ConvertedExpense], base_currency: str):
    """Render the filtered expenses as a table with original and converted amounts."""
    st.header("Expenses")
    if not rows:
        st.write("No expenses match the current filters.")
        return
    df = pd.DataFrame(
        [
            {
                "date": r.expense_date,
                "category": r.category,
                "amount": r.original_amount,
                "currency": r.currency,
                f"amount ({base_currency})": r.base_amount,
                "description": r.expense.description,
                "recurring": bool(r.expense.recurring_expense_id),
            }
            for r in rows
        ]
    )
    st.dataframe(
        df.style.format({"amount": "{:.2f}", f"amount ({base_currency})": "{:.2f}"}),
        use_container_width=True,
    )


def display_period_stats(stats: PeriodStats, granularity: str, base_currency: str):
    label = PERIOD_LABELS.get(str(getattr(granularity, "value", granularity)), "Month")
    st.header(f"Spending per {label.lower()}")
    if not stats.rows:
        st.write("No data for the selected filters.")
        return
    st.write(f"Average per {label.lower()}: **{format_amount(stats.average, base_currency)}**")
    if stats.best:
        st.write(f"Highest {label.lower()}: **{stats.best.period}** ({format_amount(stats.best.total, base_currency)})")
    df = pd.DataFrame(
        [{label: r.period, f"Total ({base_currency})": r.total, "Entries": r.entries} for r in stats.rows]
    )
    st.dataframe(df.style.format({f"Total ({base_currency})": "{:.2f}"}), use_container_width=True)


def display_charts(by_category: Dict[str, float], by_date: Dict[str, float], base_currency: str):
    """Bar chart per category and line chart per date, both in the base currency."""
    st.header("Charts")
    if not by_category:
        st.info("No expenses to chart.")
        return
    cat_df = pd.DataFrame({"category": list(by_category.keys()), "total": list(by_category.values())})
    bars = alt.Chart(cat_df).mark_bar(color="#0ea5e9").encode(
        x=alt.X("category:N", title="Category", sort=list(by_category.keys())),
        y=alt.Y("total:Q", title=f"Amount ({base_currency})"),
        tooltip=[
            alt.Tooltip("category:N", title="Category"),
            alt.Tooltip("total:Q", title=f"Amount ({base_currency})", format=".2f"),
        ],
    ).properties(height=300)

    date_df = pd.DataFrame({"date": pd.to_datetime(list(by_date.keys())), "total": list(by_date.values())})
    line = alt.Chart(date_df).mark_line(color="#ef4444", strokeWidth=2, point=True).encode(
        x=alt.X("date:T", title="Date", axis=alt.Axis(format="%Y-%m-%d", labelAngle=-45)),
        y=alt.Y("total:Q", title=f"Amount ({base_currency})"),
        tooltip=[
            alt.Tooltip("date:T", title="Date", format="%Y-%m-%d"),
            alt.Tooltip("total:Q", title=f"Amount ({base_currency})", format=".2f"),
        ],
    ).properties(height=300)

    col1, col2 = st.columns(2)
    with col1:
        st.altair_chart(bars, use_container_width=True)
    with col2:
        st.altair_chart(line, use_container_width=True)


def expense_choices(expenses) -> Dict[str, str]:
    """Selectbox labels keyed by expense id; identical-looking expenses stay distinct."""
    return {
        e.id: f"#{e.id[:8]} {e.expense_date} {e.category.value} {format_amount(e.amount, e.currency)} {e.description}".rstrip()
        for e in expenses
    }


def rule_choices(rules) -> Dict[str, str]:
    return {r.id: f"#{r.id[:8]} {r.name} ({r.frequency.value}, next {r.next_due_date})" for r in rules}


def display_manage_expenses(tracker):
    """
    UI to select, edit and delete an existing expense.
    Expects a tracker instance (spendtrack.tracker.ExpenseTracker).
    """
    st.header("Edit / Delete Expense")
    exs = list(reversed(tracker.expenses))
    if not exs:
        st.info("No expenses recorded.")
        return

    options = expense_choices(exs)
    sel_id = st.selectbox("Select expense", options=list(options), format_func=options.get)
    expense = next((e for e in exs if e.id == sel_id), None)
    if not expense:
        st.error("Selected expense not found.")
        return

    with st.form(key=f"edit_expense_{expense.id}"):
        expense_date = st.date_input("Date", value=_date_or_today(expense.expense_date))
        category = st.selectbox("Category", options=CATEGORIES, index=_index_of(CATEGORIES, expense.category))
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f", value=float(expense.amount))
        currency = st.selectbox("Currency", options=CURRENCIES, index=_index_of(CURRENCIES, expense.currency))
        description = st.text_input("Description", value=expense.description, max_chars=MAX_DESCRIPTION_LENGTH)
        save_btn = st.form_submit_button("Save changes")

    if save_btn:
        try:
            updated = tracker.edit_expense(
                expense.id,
                expense_date=expense_date.isoformat() if expense_date else "",
                category=category,
                amount=amount,
                currency=currency,
                description=description,
            )
        except ValidationError as exc:
            st.error(str(exc))
            return
        if updated:
            st.success("Expense updated.")
            _trigger_rerun()
        else:
            st.error("Failed to update expense.")

    st.markdown("---")
    delete_confirm = st.checkbox("I confirm I want to delete this expense")
    if st.button("Delete expense") and delete_confirm:
        if tracker.delete_expense(expense.id):
            st.success("Expense deleted.")
            _trigger_rerun()
        else:
            st.error("Failed to delete expense. Check the server logs for details.")


def display_manage_recurring(tracker):
    """List recurring rules; edit one or delete it with its generated expenses."""
    st.header("Recurring Expenses")
    if not tracker.rules:
        st.info("No recurring expenses yet.")
        return

    df = pd.DataFrame([
        {
            "name": r.name,
            "category": r.category.value,
            "amount": r.amount,
            "currency": r.currency.value,
            "frequency": r.frequency.value,
            "next due": r.next_due_date,
        }
        for r in tracker.rules
    ])
    st.dataframe(df.style.format({"amount": "{:.2f}"}), use_container_width=True)

    options = rule_choices(tracker.rules)
    sel_id = st.selectbox("Select recurring expense", options=list(options), format_func=options.get)
    rule = next((r for r in tracker.rules if r.id == sel_id), None)
    if not rule:
        st.error("Selected recurring expense not found.")
        return

    with st.form(key=f"edit_rule_{rule.id}"):
        name = st.text_input("Name", value=rule.name, max_chars=MAX_NAME_LENGTH)
        category = st.selectbox("Category", options=CATEGORIES, index=_index_of(CATEGORIES, rule.category))
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f", value=float(rule.amount))
        currency = st.selectbox("Currency", options=CURRENCIES, index=_index_of(CURRENCIES, rule.currency))
        frequency = st.selectbox("Frequency", options=FREQUENCIES, index=_index_of(FREQUENCIES, rule.frequency, 1))
        next_due = st.date_input("Next due date", value=_date_or_today(rule.next_due_date))
        save_btn = st.form_submit_button("Save changes")

    if save_btn:
        try:
            updated = tracker.update_recurring(
                rule.id,
                name=name,
                category=category,
                amount=amount,
                currency=currency,
                frequency=frequency,
                next_due_date=next_due.isoformat() if next_due else "",
            )
        except ValidationError as exc:
            st.error(str(exc))
            return
        if updated:
            st.success("Recurring expense updated.")
            _trigger_rerun()
        else:
            st.error("Failed to update recurring expense.")

    st.markdown("---")
    st.write("Deleting a recurring expense also deletes every expense it generated.")
    delete_confirm = st.checkbox("I confirm I want to delete this recurring expense")
    if st.button("Delete recurring expense") and delete_confirm:
        if tracker.delete_recurring(rule.id):
            st.success("Recurring expense deleted.")
            _trigger_rerun()
        else:
            st.error("Failed to delete recurring expense.")
