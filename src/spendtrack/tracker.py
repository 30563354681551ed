"""
tracker.py - application service between the UI and the record store

Responsibilities:
 - keep the last fetched lists of expenses and recurring rules
   (replaced wholesale on every refresh, never patched)
 - run the session-start sync: materialize due recurring rules, then refresh
 - provide helper APIs consumed by the UI:
     add/edit/delete expense, add/update/delete recurring rule,
     storage_status, view (aggregation for a ViewState)

Input errors raise ValidationError before the store is called. Store errors
are logged and reported as False/None; nothing is retried here, the next
user action or session start simply tries again.
"""

import datetime
import logging
from typing import List, Optional, Tuple

from spendtrack.aggregation import DashboardView, build_view
from spendtrack.config import EXPENSES_TABLE, RECURRING_TABLE
from spendtrack.materializer import MaterializeResult, materialize_due
from spendtrack.models import (
    Expense,
    RecurringRule,
    validate_expense_input,
    validate_rule_input,
)
from spendtrack.state import ViewState
from spendtrack.store import RecordStore, StoreError, open_store

# ensure a logger is available
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class ExpenseTracker:
    """
    One tracker per session. The UI creates it once (cached in
    st.session_state) and calls sync() when the session starts.
    """

    def __init__(self, store: Optional[RecordStore] = None):
        self.store = store if store is not None else open_store()
        self.expenses: List[Expense] = []
        self.rules: List[RecurringRule] = []
        self.last_materialization: Optional[MaterializeResult] = None

    def storage_status(self) -> Tuple[str, str]:
        """Return current storage backend and a short diagnostic message for the UI."""
        if self.store.name == "google_sheets":
            return "google_sheets", "Persistent storage active (Google Sheets)."
        reason = getattr(self.store, "reason", "") or "Google Sheets not configured"
        return self.store.name, f"Using local file fallback: {reason}."

    # -----------------------
    # Sync / refresh
    # -----------------------
    def materialize(self, today: Optional[datetime.date] = None) -> bool:
        result = materialize_due(self.store, today=today)
        self.last_materialization = result
        if result.ok:
            logger.info(
                "Materialized recurring expenses (created=%d, duplicates=%d, rules advanced=%d)",
                result.created, result.duplicates, result.rules_advanced,
            )
        else:
            logger.warning("Materialization failed: %s", result.error)
        return result.ok

    def sync(self, today: Optional[datetime.date] = None) -> bool:
        """Session-start flow: materialize due rules, then refetch both lists."""
        ok = self.materialize(today=today)
        # refresh both even if one fails, the other list is still useful
        expenses_ok = self.refresh_expenses()
        rules_ok = self.refresh_rules()
        return ok and expenses_ok and rules_ok

    def refresh_expenses(self) -> bool:
        try:
            records = self.store.query(EXPENSES_TABLE, order_by=("expense_date", "created_at"))
        except StoreError:
            logger.exception("Failed to fetch expenses")
            return False
        self.expenses = [Expense.from_dict(r) for r in records]
        return True

    def refresh_rules(self) -> bool:
        try:
            records = self.store.query(RECURRING_TABLE, order_by=("created_at",))
        except StoreError:
            logger.exception("Failed to fetch recurring rules")
            return False
        self.rules = [RecurringRule.from_dict(r) for r in records]
        return True

    def view(self, state: ViewState, today: Optional[datetime.date] = None) -> DashboardView:
        return build_view(self.expenses, state, today=today)

    # -----------------------
    # Expenses
    # -----------------------
    def add_expense(self, expense_date, category, amount, currency, description: str = "") -> Optional[Expense]:
        """
        Validate and store a manually entered expense, then refresh.
        Raises ValidationError for bad input; returns None if the store fails.
        """
        payload = validate_expense_input(expense_date, category, amount, currency, description)
        try:
            record = self.store.insert(EXPENSES_TABLE, payload)
        except StoreError:
            logger.exception("Failed to add expense")
            return None
        self.refresh_expenses()
        return Expense.from_dict(record)

    def edit_expense(self, expense_id: str, expense_date, category, amount, currency, description: str = "") -> bool:
        payload = validate_expense_input(expense_date, category, amount, currency, description)
        try:
            self.store.update(EXPENSES_TABLE, expense_id, payload)
        except StoreError:
            logger.exception("Failed to update expense id=%s", expense_id)
            return False
        self.refresh_expenses()
        return True

    def delete_expense(self, expense_id: str) -> bool:
        logger.info("Attempting to delete expense id=%s", expense_id)
        try:
            removed = self.store.delete(EXPENSES_TABLE, id=expense_id)
        except StoreError:
            logger.exception("Failed to delete expense id=%s", expense_id)
            return False
        if not removed:
            logger.info("Expense id=%s not found", expense_id)
        self.refresh_expenses()
        return True

    # -----------------------
    # Recurring rules
    # -----------------------
    def add_recurring(
        self,
        name,
        category,
        amount,
        currency,
        frequency,
        next_due_date,
        today: Optional[datetime.date] = None,
    ) -> Optional[RecurringRule]:
        """
        Store a new rule and immediately materialize any occurrences that
        are already due, then refresh both lists.
        """
        payload = validate_rule_input(name, category, amount, currency, frequency, next_due_date)
        try:
            record = self.store.insert(RECURRING_TABLE, payload)
        except StoreError:
            logger.exception("Failed to add recurring rule")
            return None
        self.materialize(today=today)
        self.refresh_rules()
        self.refresh_expenses()
        return RecurringRule.from_dict(record)

    def update_recurring(self, rule_id: str, name, category, amount, currency, frequency, next_due_date) -> bool:
        payload = validate_rule_input(name, category, amount, currency, frequency, next_due_date)
        try:
            self.store.update(RECURRING_TABLE, rule_id, payload)
        except StoreError:
            logger.exception("Failed to update recurring rule id=%s", rule_id)
            return False
        self.refresh_rules()
        self.refresh_expenses()
        return True

    def delete_recurring(self, rule_id: str) -> bool:
        """Delete a rule together with the expenses it generated (generated ones first)."""
        try:
            removed = self.store.delete(EXPENSES_TABLE, recurring_expense_id=rule_id)
            self.store.delete(RECURRING_TABLE, id=rule_id)
        except StoreError:
            logger.exception("Failed to delete recurring rule id=%s", rule_id)
            return False
        logger.info("Deleted recurring rule id=%s and %d generated expense(s)", rule_id, removed)
        self.refresh_rules()
        self.refresh_expenses()
        return True
