# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides:
# - SupabaseClient: singleton holder for the service-role Supabase client
# - SupabaseRepository: the Repository interface (lib/repository.py)
#   implemented on top of PostgREST query builders
#
# The service-role key bypasses RLS, so this module must only ever run
# server side. The quiz answer key and the restore path depend on that.
#
# Usage:
#   from lib.supabase_client import SupabaseRepository
#   repo = SupabaseRepository()
#   people = repo.find_many("people", eq={"is_living": True})
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from postgrest.exceptions import APIError
from supabase import create_client, Client

from app.config import settings
from lib.repository import DuplicateKeyError, RepositoryError

# Set up logging for this module
logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class SupabaseClientError(RepositoryError):
    """
    Error during Supabase operations.

    Provides actionable error messages: what failed and how to fix it.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        table: str | None = None,
        operation: str | None = None,
    ):
        super().__init__(
            message,
            table=table,
            operation=operation,
            code=code,
            suggestion=suggestion,
        )

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Singleton holder for the Supabase client.

    One client instance is shared across the application. All methods are
    class methods for easy access without instantiation.
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance


class SupabaseRepository:
    """
    Repository backed by Supabase PostgREST.

    Every call is a single HTTP request; nothing here retries. Failures are
    raised as SupabaseClientError (or DuplicateKeyError for unique
    violations) for the service layer to translate.
    """

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = SupabaseClient.get_client()
        return self._client

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
        query = self.client.table(table).select(columns)
        query = _apply_filters(query, eq=eq, in_=in_, contains=contains, not_null=not_null)
        if order_by:
            query = query.order(order_by, desc=desc)
        if offset is not None and limit is not None:
            query = query.range(offset, offset + limit - 1)
        elif limit is not None:
            query = query.limit(limit)
        response = self._execute(query, table, "select")
        return response.data or []

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
        query = self.client.table(table).select(columns, count="exact")
        query = _apply_filters(query, eq=eq)
        query = query.order(order_by, desc=desc).range(offset, offset + limit - 1)
        response = self._execute(query, table, "select")
        return response.data or [], response.count or 0

    def count(self, table, *, eq=None, in_=None):
        query = self.client.table(table).select("id", count="exact").limit(1)
        query = _apply_filters(query, eq=eq, in_=in_)
        response = self._execute(query, table, "count")
        return response.count or 0

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, table, row):
        response = self._execute(self.client.table(table).insert(row), table, "insert")
        if not response.data:
            raise SupabaseClientError(
                message=f"Insert into {table} returned no data",
                code="INSERT_FAILED",
                table=table,
                operation="insert",
            )
        return response.data[0]

    def update(self, table, values, *, eq):
        query = _apply_filters(self.client.table(table).update(values), eq=eq)
        response = self._execute(query, table, "update")
        return response.data or []

    def conditional_update(self, table, values, *, eq, expected):
        # One UPDATE ... WHERE <eq> AND <expected>; Postgres row locking makes
        # this a compare-and-set. Empty data means another writer won.
        query = _apply_filters(
            self.client.table(table).update(values),
            eq={**eq, **expected},
        )
        response = self._execute(query, table, "update")
        return response.data[0] if response.data else None

    def upsert_batch(self, table, rows, *, on_conflict, ignore_duplicates=False):
        if not rows:
            return 0
        query = self.client.table(table).upsert(
            rows,
            on_conflict=on_conflict,
            ignore_duplicates=ignore_duplicates,
        )
        self._execute(query, table, "upsert")
        return len(rows)

    def delete(self, table, *, eq=None, in_=None, not_in=None):
        query = self.client.table(table).delete()
        query = _apply_filters(query, eq=eq, in_=in_)
        for col, values in (not_in or {}).items():
            query = query.not_.in_(col, list(values))
        response = self._execute(query, table, "delete")
        return len(response.data or [])

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _execute(query, table: str, operation: str):
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateKeyError(e.message or str(e), table=table)
            logger.error(f"Supabase {operation} on {table} failed: {e.message}")
            raise SupabaseClientError(
                message=e.message or str(e),
                code=e.code or "SUPABASE_ERROR",
                table=table,
                operation=operation,
            )
        except Exception as e:
            logger.error(f"Supabase {operation} on {table} failed: {e}")
            raise SupabaseClientError(
                message=str(e),
                code="SUPABASE_UNAVAILABLE",
                suggestion="Check network access to SUPABASE_URL",
                table=table,
                operation=operation,
            )


def _apply_filters(
    query,
    *,
    eq: dict[str, Any] | None = None,
    in_: dict[str, list[Any]] | None = None,
    contains: dict[str, list[Any]] | None = None,
    not_null: list[str] | None = None,
):
    for col, value in (eq or {}).items():
        query = query.is_(col, "null") if value is None else query.eq(col, value)
    for col, values in (in_ or {}).items():
        query = query.in_(col, list(values))
    for col, values in (contains or {}).items():
        query = query.contains(col, list(values))
    for col in not_null or []:
        query = query.not_.is_(col, "null")
    return query
