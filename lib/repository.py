# =============================================================================
# lib/repository.py - Data Store Interface + In-Memory Implementation
# =============================================================================
# Services never talk to Supabase directly; they receive a Repository.
# Two implementations exist:
# - SupabaseRepository (lib/supabase_client.py): production, PostgREST-backed
# - InMemoryRepository (this module): tests and local development
#
# Filters mirror the PostgREST operators the app needs:
#   eq={"col": value}           -> .eq(col, value)
#   in_={"col": [values]}       -> .in_(col, values)
#   not_in={"col": [values]}    -> .not_.in_(col, values)
#   contains={"col": [values]}  -> .contains(col, values)   (array columns)
#   not_null=["col"]            -> .not_.is_(col, "null")
#
# Usage:
#   repo = InMemoryRepository()
#   row = repo.insert("events", {"title": "Giỗ tổ"})
#   repo.find_one("events", eq={"id": row["id"]})
# =============================================================================

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Protocol

from lib.utils import ApplicationError


# =============================================================================
# Errors
# =============================================================================

class RepositoryError(ApplicationError):
    """
    Raised when the data store rejects or fails an operation.

    Services catch this at their boundary and convert it into an
    UpstreamError (HTTP 500) or a domain error.
    """

    def __init__(
        self,
        message: str,
        table: str | None = None,
        operation: str | None = None,
        code: str = "REPOSITORY_ERROR",
        suggestion: str | None = None,
    ):
        super().__init__(
            message,
            code=code,
            suggestion=suggestion,
            details={"table": table, "operation": operation},
        )
        self.table = table
        self.operation = operation


class DuplicateKeyError(RepositoryError):
    """Raised when an insert violates a unique key (Postgres 23505)."""

    def __init__(self, message: str, table: str | None = None):
        super().__init__(
            message,
            table=table,
            operation="insert",
            code="DUPLICATE_KEY",
            suggestion="Use a different key or upsert instead",
        )


# =============================================================================
# Interface
# =============================================================================

class Repository(Protocol):
    """Table-oriented access to the backing data store."""

    def find_one(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        ...

    def find_many(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: dict[str, Any] | None = None,
        in_: dict[str, list[Any]] | None = None,
        contains: dict[str, list[Any]] | None = None,
        not_null: list[str] | None = None,
        order_by: str | None = None,
        desc: bool = False,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        ...

    def find_page(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: dict[str, Any] | None = None,
        order_by: str = "created_at",
        desc: bool = True,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        ...

    def count(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        in_: dict[str, list[Any]] | None = None,
    ) -> int:
        ...

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        ...

    def update(
        self,
        table: str,
        values: dict[str, Any],
        *,
        eq: dict[str, Any],
    ) -> list[dict[str, Any]]:
        ...

    def conditional_update(
        self,
        table: str,
        values: dict[str, Any],
        *,
        eq: dict[str, Any],
        expected: dict[str, Any],
    ) -> dict[str, Any] | None:
        ...

    def upsert_batch(
        self,
        table: str,
        rows: list[dict[str, Any]],
        *,
        on_conflict: str,
        ignore_duplicates: bool = False,
    ) -> int:
        ...

    def delete(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        in_: dict[str, list[Any]] | None = None,
        not_in: dict[str, list[Any]] | None = None,
    ) -> int:
        ...


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (the format Supabase returns)."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# In-Memory Implementation
# =============================================================================

# Unique keys beyond the implicit `id` primary key
UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "people": [("handle",)],
    "families": [("handle",)],
    "birthday_notifications": [("person_handle", "sent_year", "recipient_email")],
    "app_settings": [("key",)],
}


class InMemoryRepository:
    """
    Dict-of-lists data store for tests and local development.

    Rows are deep-copied on the way in and out so callers can never mutate
    stored state by accident. A single lock makes conditional_update a true
    compare-and-set even when routes run in the threadpool.
    """

    def __init__(self, seed: dict[str, list[dict[str, Any]]] | None = None):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self._failures: dict[tuple[str, str], str] = {}
        self._lock = threading.RLock()
        for table, rows in (seed or {}).items():
            for row in rows:
                self.insert(table, row)

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def inject_failure(self, table: str, operation: str, message: str = "simulated failure") -> None:
        """Make every future `operation` on `table` raise RepositoryError."""
        self._failures[(table, operation)] = message

    def clear_failures(self) -> None:
        self._failures.clear()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.tables.clear()
            self._failures.clear()

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Raw copy of every row in a table."""
        return copy.deepcopy(self.tables.get(table, []))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find_one(self, table, *, columns="*", eq=None):
        rows = self.find_many(table, columns=columns, eq=eq, limit=1)
        return rows[0] if rows else None

    def find_many(
        self,
        table,
        *,
        columns="*",
        eq=None,
        in_=None,
        contains=None,
        not_null=None,
        order_by=None,
        desc=False,
        offset=None,
        limit=None,
    ):
        self._check_failure(table, "select")
        with self._lock:
            matched = [
                (idx, row)
                for idx, row in enumerate(self.tables.get(table, []))
                if _matches(row, eq=eq, in_=in_, contains=contains, not_null=not_null)
            ]
            if order_by:
                matched.sort(
                    key=lambda item: (_sort_key(item[1].get(order_by)), item[0]),
                    reverse=desc,
                )
            rows = [row for _, row in matched]
            start = offset or 0
            end = start + limit if limit is not None else None
            return [_project(row, columns) for row in rows[start:end]]

    def find_page(
        self,
        table,
        *,
        columns="*",
        eq=None,
        order_by="created_at",
        desc=True,
        offset=0,
        limit=20,
    ):
        total = self.count(table, eq=eq)
        rows = self.find_many(
            table,
            columns=columns,
            eq=eq,
            order_by=order_by,
            desc=desc,
            offset=offset,
            limit=limit,
        )
        return rows, total

    def count(self, table, *, eq=None, in_=None):
        self._check_failure(table, "count")
        with self._lock:
            return sum(
                1 for row in self.tables.get(table, []) if _matches(row, eq=eq, in_=in_)
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, table, row):
        self._check_failure(table, "insert")
        with self._lock:
            stored = copy.deepcopy(row)
            stored.setdefault("id", str(uuid.uuid4()))
            stored.setdefault("created_at", utc_now_iso())
            self._ensure_unique(table, stored)
            self.tables.setdefault(table, []).append(stored)
            return copy.deepcopy(stored)

    def update(self, table, values, *, eq):
        self._check_failure(table, "update")
        with self._lock:
            updated = []
            for row in self.tables.get(table, []):
                if _matches(row, eq=eq):
                    row.update(copy.deepcopy(values))
                    updated.append(copy.deepcopy(row))
            return updated

    def conditional_update(self, table, values, *, eq, expected):
        self._check_failure(table, "update")
        with self._lock:
            for row in self.tables.get(table, []):
                if _matches(row, eq={**eq, **expected}):
                    row.update(copy.deepcopy(values))
                    return copy.deepcopy(row)
            return None

    def upsert_batch(self, table, rows, *, on_conflict, ignore_duplicates=False):
        self._check_failure(table, "upsert")
        keys = tuple(col.strip() for col in on_conflict.split(","))
        with self._lock:
            existing_rows = self.tables.setdefault(table, [])
            for row in rows:
                target = next(
                    (
                        existing
                        for existing in existing_rows
                        if all(existing.get(k) == row.get(k) for k in keys)
                    ),
                    None,
                )
                if target is None:
                    stored = copy.deepcopy(row)
                    stored.setdefault("id", str(uuid.uuid4()))
                    stored.setdefault("created_at", utc_now_iso())
                    existing_rows.append(stored)
                elif not ignore_duplicates:
                    target.update(copy.deepcopy(row))
            return len(rows)

    def delete(self, table, *, eq=None, in_=None, not_in=None):
        self._check_failure(table, "delete")
        with self._lock:
            kept, removed = [], 0
            for row in self.tables.get(table, []):
                if _matches(row, eq=eq, in_=in_, not_in=not_in):
                    removed += 1
                else:
                    kept.append(row)
            self.tables[table] = kept
            return removed

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check_failure(self, table: str, operation: str) -> None:
        message = self._failures.get((table, operation))
        if message is not None:
            raise RepositoryError(message, table=table, operation=operation)

    def _ensure_unique(self, table: str, row: dict[str, Any]) -> None:
        for key in [("id",)] + UNIQUE_KEYS.get(table, []):
            if any(row.get(col) is None for col in key):
                continue
            for existing in self.tables.get(table, []):
                if all(existing.get(col) == row.get(col) for col in key):
                    raise DuplicateKeyError(
                        f"duplicate key value violates unique constraint on {table}({', '.join(key)})",
                        table=table,
                    )


def _matches(
    row: dict[str, Any],
    *,
    eq: dict[str, Any] | None = None,
    in_: dict[str, Iterable[Any]] | None = None,
    not_in: dict[str, Iterable[Any]] | None = None,
    contains: dict[str, Iterable[Any]] | None = None,
    not_null: list[str] | None = None,
) -> bool:
    for col, value in (eq or {}).items():
        if row.get(col) != value:
            return False
    for col, values in (in_ or {}).items():
        if row.get(col) not in list(values):
            return False
    for col, values in (not_in or {}).items():
        if row.get(col) in list(values):
            return False
    for col, values in (contains or {}).items():
        current = row.get(col) or []
        if not all(v in current for v in values):
            return False
    for col in not_null or []:
        if row.get(col) is None:
            return False
    return True


def _sort_key(value: Any) -> tuple:
    return (0, "") if value is None else (1, value)


def _project(row: dict[str, Any], columns: str) -> dict[str, Any]:
    if columns.strip() == "*":
        return copy.deepcopy(row)
    wanted = [col.strip() for col in columns.split(",") if col.strip()]
    return {col: copy.deepcopy(row.get(col)) for col in wanted}
