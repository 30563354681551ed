"""
materializer.py - generate due expenses from recurring rules

For every rule, walk its due date forward from next_due_date to today,
inserting one expense per elapsed period, then store the advanced due date.

The pass is safe to run any number of times: the store rejects a second
expense for the same (recurring_expense_id, expense_date) with ConflictError,
which is counted as already materialized. There is no in-memory
deduplication and no retry; an interrupted pass is simply re-run at the next
session start.

Failure policy is fail-fast: the first non-conflict error stops the whole
pass and later rules wait for the next invocation.
"""

import datetime
import logging
from dataclasses import dataclass
from typing import Optional

from spendtrack.config import EXPENSES_TABLE, RECURRING_TABLE
from spendtrack.dates import advance_by_frequency, format_date, parse_date, utc_today
from spendtrack.models import RecurringRule
from spendtrack.store import ConflictError, RecordStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class MaterializeResult:
    ok: bool = True
    created: int = 0
    duplicates: int = 0
    rules_advanced: int = 0
    error: Optional[str] = None


def materialize_rule(
    store: RecordStore,
    rule: RecurringRule,
    today: datetime.date,
    result: Optional[MaterializeResult] = None,
) -> int:
    """
    Bring one rule up to date. Returns the number of expenses inserted.

    Raises StoreError (other than conflicts) and ValueError for a rule whose
    stored due date cannot be parsed. Expenses inserted before the failure
    stay; the rule's due date is then left unchanged and the next pass skips
    them through the conflict path.
    """
    if result is None:
        result = MaterializeResult()
    start = parse_date(rule.next_due_date)
    cursor = start
    created = 0
    while cursor <= today:
        try:
            store.insert(EXPENSES_TABLE, rule.expense_payload(cursor))
            created += 1
        except ConflictError:
            logger.debug("Rule %s already materialized for %s", rule.id, cursor)
            result.duplicates += 1
        cursor = advance_by_frequency(cursor, rule.frequency)

    if cursor != start:
        store.update(RECURRING_TABLE, rule.id, {"next_due_date": format_date(cursor)})
        result.rules_advanced += 1
        logger.info("Rule %s (%s): %d new expense(s), next due %s", rule.id, rule.name, created, cursor)
    result.created += created
    return created


def materialize_due(store: RecordStore, today: Optional[datetime.date] = None) -> MaterializeResult:
    """Materialize every rule in creation order, stopping at the first failure."""
    today = today or utc_today()
    result = MaterializeResult()
    try:
        records = store.query(RECURRING_TABLE, order_by=("created_at",))
    except StoreError as exc:
        logger.exception("Could not load recurring rules")
        result.ok = False
        result.error = str(exc)
        return result

    for record in records:
        rule = RecurringRule.from_dict(record)
        try:
            materialize_rule(store, rule, today, result)
        except (StoreError, ValueError) as exc:
            logger.exception("Materialization stopped at rule %s", rule.id)
            result.ok = False
            result.error = str(exc)
            return result
    return result
