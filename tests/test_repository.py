# =============================================================================
# tests/test_repository.py - Data Store Tests
# =============================================================================
# Tests for both Repository implementations:
# - InMemoryRepository semantics the services rely on
# - SupabaseRepository query building and error translation (mocked client)
#
# Run with: pytest tests/test_repository.py -v
# =============================================================================

from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from lib.repository import DuplicateKeyError, InMemoryRepository, RepositoryError
from lib.supabase_client import SupabaseClientError, SupabaseRepository


# =============================================================================
# In-memory
# =============================================================================

class TestInMemoryRepository:
    """Tests for InMemoryRepository."""

    def test_insert_assigns_id_and_copies(self):
        repo = InMemoryRepository()
        row = {"handle": "P001", "families": []}

        stored = repo.insert("people", row)
        stored["families"].append("F001")

        assert stored["id"]
        assert repo.rows("people")[0]["families"] == []

    def test_unique_handle(self):
        repo = InMemoryRepository()
        repo.insert("people", {"handle": "P001"})

        with pytest.raises(DuplicateKeyError):
            repo.insert("people", {"handle": "P001"})

    def test_conditional_update_is_compare_and_set(self):
        """Only the first claim of a pending row wins."""
        repo = InMemoryRepository()
        row = repo.insert("contributions", {"status": "pending"})

        first = repo.conditional_update(
            "contributions", {"status": "approved"}, eq={"id": row["id"]}, expected={"status": "pending"}
        )
        second = repo.conditional_update(
            "contributions", {"status": "approved"}, eq={"id": row["id"]}, expected={"status": "pending"}
        )

        assert first["status"] == "approved"
        assert second is None

    def test_upsert_updates_or_ignores(self):
        repo = InMemoryRepository()
        repo.insert("people", {"handle": "P001", "display_name": "Cũ"})

        repo.upsert_batch("people", [{"handle": "P001", "display_name": "Mới"}], on_conflict="handle")
        assert repo.rows("people")[0]["display_name"] == "Mới"

        repo.upsert_batch(
            "people", [{"handle": "P001", "display_name": "Bỏ qua"}], on_conflict="handle", ignore_duplicates=True
        )
        assert repo.rows("people")[0]["display_name"] == "Mới"

    def test_filters(self):
        repo = InMemoryRepository(seed={"families": [
            {"handle": "F001", "children": ["P001", "P002"], "father_handle": "P000"},
            {"handle": "F002", "children": [], "father_handle": None},
        ]})

        assert [f["handle"] for f in repo.find_many("families", contains={"children": ["P002"]})] == ["F001"]
        assert [f["handle"] for f in repo.find_many("families", not_null=["father_handle"])] == ["F001"]
        assert repo.delete("families", not_in={"handle": ["F001"]}) == 1

    def test_find_page_orders_newest_first(self):
        repo = InMemoryRepository()
        for day in ("01", "03", "02"):
            repo.insert("posts", {"created_at": f"2025-01-{day}"})

        rows, total = repo.find_page("posts", offset=0, limit=2)

        assert total == 3
        assert [r["created_at"] for r in rows] == ["2025-01-03", "2025-01-02"]

    def test_injected_failure(self):
        repo = InMemoryRepository()
        repo.inject_failure("events", "insert", "boom")

        with pytest.raises(RepositoryError) as exc_info:
            repo.insert("events", {})

        assert "boom" in str(exc_info.value)
        repo.clear_failures()
        repo.insert("events", {})


# =============================================================================
# Supabase (mocked PostgREST builder)
# =============================================================================

@pytest.fixture
def query():
    """A fluent PostgREST builder whose every method returns itself."""
    builder = MagicMock(name="query")
    for method in ("select", "eq", "in_", "is_", "contains", "order", "range", "limit",
                   "insert", "update", "upsert", "delete"):
        getattr(builder, method).return_value = builder
    builder.not_ = builder
    builder.execute.return_value = MagicMock(data=[{"id": "1"}], count=1)
    return builder


@pytest.fixture
def supabase_repo(query):
    client = MagicMock(name="client")
    client.table.return_value = query
    return SupabaseRepository(client=client)


class TestSupabaseRepository:
    """Tests for SupabaseRepository against a mocked client."""

    def test_find_many_applies_filters(self, supabase_repo, query):
        rows = supabase_repo.find_many(
            "people",
            columns="handle",
            eq={"is_living": True, "avatar_url": None},
            in_={"handle": ["P001"]},
            offset=20,
            limit=20,
        )

        assert rows == [{"id": "1"}]
        query.select.assert_called_once_with("handle")
        query.eq.assert_called_once_with("is_living", True)
        query.is_.assert_called_once_with("avatar_url", "null")
        query.in_.assert_called_once_with("handle", ["P001"])
        query.range.assert_called_once_with(20, 39)

    def test_conditional_update_lost_race(self, supabase_repo, query):
        """Empty data from the guarded UPDATE means another writer won."""
        query.execute.return_value = MagicMock(data=[])

        result = supabase_repo.conditional_update(
            "contributions", {"status": "approved"}, eq={"id": "c1"}, expected={"status": "pending"}
        )

        assert result is None
        query.eq.assert_any_call("status", "pending")

    def test_upsert_passes_conflict_target(self, supabase_repo, query):
        count = supabase_repo.upsert_batch(
            "birthday_notifications", [{"a": 1}, {"a": 2}],
            on_conflict="person_handle,sent_year,recipient_email", ignore_duplicates=True,
        )

        assert count == 2
        query.upsert.assert_called_once_with(
            [{"a": 1}, {"a": 2}],
            on_conflict="person_handle,sent_year,recipient_email",
            ignore_duplicates=True,
        )

    def test_empty_upsert_skips_request(self, supabase_repo, query):
        assert supabase_repo.upsert_batch("people", [], on_conflict="handle") == 0
        query.execute.assert_not_called()

    def test_unique_violation(self, supabase_repo, query):
        query.execute.side_effect = APIError({"code": "23505", "message": "duplicate key"})

        with pytest.raises(DuplicateKeyError):
            supabase_repo.insert("people", {"handle": "P001"})

    def test_api_error_translated(self, supabase_repo, query):
        query.execute.side_effect = APIError({"code": "42P01", "message": "relation does not exist"})

        with pytest.raises(SupabaseClientError) as exc_info:
            supabase_repo.find_many("missing")

        assert exc_info.value.code == "42P01"

    def test_network_error_translated(self, supabase_repo, query):
        query.execute.side_effect = ConnectionError("refused")

        with pytest.raises(SupabaseClientError) as exc_info:
            supabase_repo.count("people")

        assert exc_info.value.code == "SUPABASE_UNAVAILABLE"
