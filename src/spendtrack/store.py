"""
store.py - remote record store used by the tracker and the materializer

The core only needs four operations over two tables ("expenses" and
"recurring_rules"):

    insert(table, record) -> record with id/created_at assigned
    update(table, record_id, changes) -> updated record
    delete(table, **match) -> number of deleted rows
    query(table, filters=None, order_by=()) -> list of records

Two backends implement them:
 - GoogleSheetsStore: one worksheet per table (durable, preferred)
 - JsonFileStore: local JSON file fallback (also used by tests)

The expenses table enforces uniqueness of (recurring_expense_id, expense_date)
for generated expenses. A duplicate insert raises ConflictError, whose code is
stable so callers can treat it as "already materialized".
"""

import ast
import datetime
import json
import logging
import os
import shutil
import tempfile
import uuid
from typing import Any, Dict, Iterable, List, Optional

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException, WorksheetNotFound

from spendtrack.config import EXPENSES_TABLE, RECURRING_TABLE, BackendSettings

logger = logging.getLogger(__name__)

CONFLICT_CODE = "23505"

TABLE_FIELDS: Dict[str, List[str]] = {
    EXPENSES_TABLE: [
        "id",
        "expense_date",
        "category",
        "amount",
        "currency",
        "description",
        "recurring_expense_id",
        "created_at",
    ],
    RECURRING_TABLE: [
        "id",
        "name",
        "category",
        "amount",
        "currency",
        "frequency",
        "next_due_date",
        "created_at",
    ],
}

UNIQUE_KEYS: Dict[str, tuple] = {
    EXPENSES_TABLE: ("recurring_expense_id", "expense_date"),
}


class StoreError(Exception):
    """Any failure reported by the record store."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConflictError(StoreError):
    """Insert rejected by a uniqueness constraint."""

    def __init__(self, message: str):
        super().__init__(message, code=CONFLICT_CODE)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _now_stamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="microseconds")


class RecordStore:
    """
    Table operations on top of two backend hooks: _read_table/_write_table.
    Backends hold every row of a table as a dict keyed by TABLE_FIELDS.
    """

    name = "base"
    available = True
    reason = ""

    def _read_table(self, table: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _write_table(self, table: str, rows: List[Dict[str, Any]]):
        raise NotImplementedError

    def _append_row(self, table: str, record: Dict[str, Any], rows: List[Dict[str, Any]]):
        self._write_table(table, rows + [record])

    @staticmethod
    def _check_table(table: str):
        if table not in TABLE_FIELDS:
            raise StoreError(f"Unknown table {table!r}")

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        return all(_cell(row.get(k)) == _cell(v) for k, v in filters.items())

    def _check_unique(self, table: str, rows: List[Dict[str, Any]], record: Dict[str, Any]):
        key = UNIQUE_KEYS.get(table)
        if not key:
            return
        # rows without the first key field (manual expenses) are not constrained
        if not _cell(record.get(key[0])):
            return
        wanted = {k: record.get(k) for k in key}
        if any(self._matches(row, wanted) for row in rows):
            raise ConflictError(
                "duplicate key value violates unique constraint on %s(%s)" % (table, ", ".join(key))
            )

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        self._check_table(table)
        rows = self._read_table(table)
        new = {f: record.get(f) for f in TABLE_FIELDS[table]}
        new["id"] = uuid.uuid4().hex
        new["created_at"] = _now_stamp()
        self._check_unique(table, rows, new)
        self._append_row(table, new, rows)
        return dict(new)

    def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        self._check_table(table)
        rows = self._read_table(table)
        for row in rows:
            if _cell(row.get("id")) == _cell(record_id):
                for k, v in changes.items():
                    if k in ("id", "created_at") or k not in TABLE_FIELDS[table]:
                        continue
                    row[k] = v
                self._write_table(table, rows)
                return dict(row)
        raise StoreError(f"No {table} row with id {record_id!r}")

    def delete(self, table: str, **match) -> int:
        self._check_table(table)
        if not match:
            raise StoreError("delete requires at least one match condition")
        rows = self._read_table(table)
        kept = [r for r in rows if not self._matches(r, match)]
        removed = len(rows) - len(kept)
        if removed:
            self._write_table(table, kept)
        return removed

    def query(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Iterable[str] = (),
    ) -> List[Dict[str, Any]]:
        self._check_table(table)
        rows = [dict(r) for r in self._read_table(table) if self._matches(r, filters or {})]
        order_by = list(order_by)
        if order_by:
            # stable sort, so insertion order breaks remaining ties
            rows.sort(key=lambda r: tuple(_cell(r.get(f)) for f in order_by))
        return rows


class JsonFileStore(RecordStore):
    """
    Local JSON persistence: {"expenses": [...], "recurring_rules": [...]}.
    Writes are atomic (temp file in the same directory, then move).
    """

    name = "local_json"

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self.reason = ""

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.exception("Failed to read data file %s", self.path)
            raise StoreError(f"Cannot read {self.path}") from exc
        return data if isinstance(data, dict) else {}

    def _read_table(self, table: str) -> List[Dict[str, Any]]:
        return list(self._load().get(table, []) or [])

    def _write_table(self, table: str, rows: List[Dict[str, Any]]):
        data = self._load()
        data[table] = rows
        dirn = os.path.dirname(self.path)
        tmp_path = None
        try:
            os.makedirs(dirn, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix="tmp_spendtrack_", dir=dirn, text=True)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            shutil.move(tmp_path, self.path)
        except OSError as exc:
            logger.exception("Failed to save data file %s", self.path)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StoreError(f"Cannot write {self.path}") from exc
        logger.debug("Saved %s to %s (rows=%d)", table, self.path, len(rows))


class GoogleSheetsStore(RecordStore):
    """
    Google Sheets persistence: one worksheet per table, first row holds the
    headers from TABLE_FIELDS. Values are written RAW so user text is never
    interpreted as a formula.

    The uniqueness check reads the sheet before appending; it is not atomic
    across concurrent writers, which the single-session app does not have.
    """

    name = "google_sheets"
    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

    def __init__(self, settings: Optional[BackendSettings] = None, spreadsheet=None):
        self.settings = settings or BackendSettings.from_env()
        self.available = False
        self.reason = ""
        self._spreadsheet = spreadsheet
        self._worksheets: Dict[str, Any] = {}

        if self._spreadsheet is None:
            if not self.settings.sheet_id:
                self.reason = "GOOGLE_SHEET_ID is not set"
                return
            try:
                client = gspread.authorize(self._build_credentials())
                self._spreadsheet = client.open_by_key(self.settings.sheet_id)
            except (GSpreadException, GoogleAuthError, ValueError, SyntaxError, OSError) as exc:
                self.reason = f"Google Sheets init failed ({exc.__class__.__name__})"
                logger.warning("Google Sheets backend unavailable: %s", self.reason)
                return

        try:
            for table, headers in TABLE_FIELDS.items():
                ws = self._get_or_create_worksheet(table, rows=1000, cols=max(12, len(headers)))
                self._ensure_headers(ws, headers)
                self._worksheets[table] = ws
            self.available = True
        except (GSpreadException, OSError) as exc:
            self.reason = f"Google Sheets init failed ({exc.__class__.__name__})"
            logger.warning("Google Sheets backend unavailable: %s", self.reason)

    def _build_credentials(self):
        if self.settings.service_account_json:
            try:
                info = json.loads(self.settings.service_account_json)
            except ValueError:
                # tolerate Python-dict style strings often pasted into secrets
                info = ast.literal_eval(self.settings.service_account_json)
            if not isinstance(info, dict):
                raise ValueError("GOOGLE_SERVICE_ACCOUNT_JSON must decode to an object")
            return Credentials.from_service_account_info(info, scopes=self.SCOPES)

        if self.settings.service_account_file:
            return Credentials.from_service_account_file(self.settings.service_account_file, scopes=self.SCOPES)

        import google.auth
        creds, _ = google.auth.default(scopes=self.SCOPES)
        return creds

    def _get_or_create_worksheet(self, title: str, rows: int, cols: int):
        try:
            return self._spreadsheet.worksheet(title)
        except WorksheetNotFound:
            return self._spreadsheet.add_worksheet(title=title, rows=rows, cols=cols)

    @staticmethod
    def _ensure_sheet_size(ws, min_rows: int, min_cols: int):
        new_rows = max(ws.row_count, min_rows)
        new_cols = max(ws.col_count, min_cols)
        if new_rows != ws.row_count or new_cols != ws.col_count:
            ws.resize(rows=new_rows, cols=new_cols)

    def _ensure_headers(self, ws, headers: List[str]):
        first = ws.row_values(1) or []
        if [x.strip() for x in first] != headers:
            self._ensure_sheet_size(ws, 2, len(headers))
            ws.update(range_name="A1", values=[headers], value_input_option="RAW")

    def _worksheet(self, table: str):
        if not self.available:
            raise StoreError(f"Google Sheets unavailable: {self.reason}")
        return self._worksheets[table]

    def _read_table(self, table: str) -> List[Dict[str, Any]]:
        ws = self._worksheet(table)
        try:
            values = ws.get_all_values() or []
        except (GSpreadException, OSError) as exc:
            logger.exception("Failed to read worksheet %s", table)
            raise StoreError(f"Cannot read worksheet {table}") from exc
        if not values:
            return []
        headers = [str(h).strip().lower() for h in values[0]]
        rows: List[Dict[str, Any]] = []
        for raw in values[1:]:
            if not any(str(c).strip() for c in raw):
                continue
            record: Dict[str, Any] = {}
            for idx, header in enumerate(headers):
                if not header:
                    continue
                record[header] = raw[idx] if idx < len(raw) else ""
            rows.append(record)
        return rows

    def _row_values(self, table: str, record: Dict[str, Any]) -> List[str]:
        return [_cell(record.get(f)) for f in TABLE_FIELDS[table]]

    def _write_table(self, table: str, rows: List[Dict[str, Any]]):
        ws = self._worksheet(table)
        headers = TABLE_FIELDS[table]
        values = [headers] + [self._row_values(table, r) for r in rows]
        try:
            self._ensure_sheet_size(ws, len(values) + 10, len(headers))
            ws.clear()
            ws.update(range_name="A1", values=values, value_input_option="RAW")
        except (GSpreadException, OSError) as exc:
            logger.exception("Failed to write worksheet %s", table)
            raise StoreError(f"Cannot write worksheet {table}") from exc

    def _append_row(self, table: str, record: Dict[str, Any], rows: List[Dict[str, Any]]):
        ws = self._worksheet(table)
        try:
            ws.append_row(self._row_values(table, record), value_input_option="RAW")
        except (GSpreadException, OSError) as exc:
            logger.exception("Failed to append to worksheet %s", table)
            raise StoreError(f"Cannot append to worksheet {table}") from exc


def open_store(settings: Optional[BackendSettings] = None) -> RecordStore:
    """Google Sheets when configured and reachable, otherwise the local JSON file."""
    settings = settings or BackendSettings.from_env()
    if settings.sheet_id:
        sheets = GoogleSheetsStore(settings)
        if sheets.available:
            return sheets
        fallback = JsonFileStore(settings.data_file)
        fallback.reason = sheets.reason
        return fallback
    fallback = JsonFileStore(settings.data_file)
    fallback.reason = "GOOGLE_SHEET_ID is not set"
    return fallback
