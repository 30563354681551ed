"""
dashboard.py - Streamlit UI entrypoint and orchestration

This module wires the UI components (spendtrack.ui.components) with the
tracker service (spendtrack.tracker). The main() function builds the
sidebar and routes the selected view to components and tracker methods.

Design notes:
 - One ExpenseTracker per browser session, kept in st.session_state.
 - sync() (materialize recurring rules, then fetch) runs once per session,
   before anything is displayed.
 - The filter/display options live in a ViewState stored as a plain dict in
   st.session_state; aggregation receives it explicitly. The base currency is
   also mirrored into the "base" query param so it survives a reload.
"""

import streamlit as st

from spendtrack.aggregation import available_months
from spendtrack.state import BASE_CURRENCY_PARAM, initial_state
from spendtrack.tracker import ExpenseTracker
from spendtrack.ui import components

_TRACKER_KEY = "tracker"
_SYNCED_KEY = "synced"
_STATE_KEY = "view_state"


def _session_tracker() -> ExpenseTracker:
    if _TRACKER_KEY not in st.session_state:
        st.session_state[_TRACKER_KEY] = ExpenseTracker()
    tracker = st.session_state[_TRACKER_KEY]
    if not st.session_state.get(_SYNCED_KEY):
        with st.spinner("Bringing recurring expenses up to date..."):
            ok = tracker.sync()
        st.session_state[_SYNCED_KEY] = True
        if not ok:
            st.warning("Some data could not be synchronized. It will be retried next session.")
    return tracker


def main():
    """
    Streamlit page: sidebar menu controls which view is shown.
    Views:
      - Overview: summary, period statistics and charts for the current filters
      - Expenses: filtered table plus the add-expense form
      - Edit Expense: edit/delete an existing expense
      - Recurring: add, edit or delete recurring rules
    """
    st.title("Expense Tracker Dashboard")
    tracker = _session_tracker()

    backend_name, backend_msg = tracker.storage_status()
    if backend_name == "google_sheets":
        st.sidebar.success(backend_msg)
    else:
        st.sidebar.warning(backend_msg)
        st.sidebar.caption(
            "For cloud persistence, set GOOGLE_SHEET_ID and "
            "GOOGLE_SERVICE_ACCOUNT_JSON in Streamlit app Secrets."
        )

    menu = ["Overview", "Expenses", "Edit Expense", "Recurring"]
    choice = st.sidebar.selectbox("Select an option", menu)

    state = initial_state(st.session_state.get(_STATE_KEY), st.query_params)
    state = components.display_filters(state, available_months(tracker.expenses))
    st.session_state[_STATE_KEY] = state.to_dict()
    base = state.base_currency.value
    st.query_params[BASE_CURRENCY_PARAM] = base
    view = tracker.view(state)

    if choice == "Overview":
        components.display_summary(view.summary, base)
        components.display_period_stats(view.stats, state.granularity, base)
        components.display_charts(view.by_category, view.by_date, base)

    elif choice == "Expenses":
        def on_submit(exp_input: components.ExpenseInput):
            return tracker.add_expense(
                expense_date=exp_input.expense_date,
                category=exp_input.category,
                amount=exp_input.amount,
                currency=exp_input.currency,
                description=exp_input.description,
            )

        components.display_expense_form(on_submit, default_currency=base)
        components.display_summary(view.summary, base)
        components.display_expense_list(view.rows, base)

    elif choice == "Edit Expense":
        components.display_manage_expenses(tracker)

    elif choice == "Recurring":
        def on_submit_rule(rule_input: components.RecurringInput):
            return tracker.add_recurring(
                name=rule_input.name,
                category=rule_input.category,
                amount=rule_input.amount,
                currency=rule_input.currency,
                frequency=rule_input.frequency,
                next_due_date=rule_input.next_due_date,
            )

        components.display_recurring_form(on_submit_rule, default_currency=base)
        components.display_manage_recurring(tracker)


if __name__ == "__main__":
    main()
