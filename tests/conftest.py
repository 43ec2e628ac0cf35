# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - In-memory data store / object store / mailbox fakes
# - A TestClient whose backends and signed-in user are overridable
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from unittest.mock import MagicMock
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from app.auth import AuthUser, get_current_user
from app.dependencies import (
    get_contribution_notifier,
    get_email_sender,
    get_object_store,
    get_repository,
)
from app.main import app
from core.models import Profile
from lib.email_client import InMemoryEmailSender
from lib.object_store import InMemoryObjectStore
from lib.repository import InMemoryRepository


ADMIN_ID = "11111111-1111-4111-8111-111111111111"
EDITOR_ID = "22222222-2222-4222-8222-222222222222"
MEMBER_ID = "33333333-3333-4333-8333-333333333333"
OTHER_MEMBER_ID = "44444444-4444-4444-8444-444444444444"


# =============================================================================
# Profiles
# =============================================================================

def profile_rows() -> list[dict]:
    return [
        {"id": ADMIN_ID, "email": "admin@giapha.vn", "display_name": "Phạm Quản Trị",
         "role": "admin", "status": "active", "created_at": "2024-01-01T00:00:00+00:00"},
        {"id": EDITOR_ID, "email": "editor@giapha.vn", "display_name": "Phạm Biên Tập",
         "role": "editor", "status": "active", "created_at": "2024-01-02T00:00:00+00:00"},
        {"id": MEMBER_ID, "email": "member@giapha.vn", "display_name": "Phạm Thành Viên",
         "role": "member", "status": "active", "created_at": "2024-01-03T00:00:00+00:00"},
        {"id": OTHER_MEMBER_ID, "email": "other@giapha.vn", "display_name": "Phạm Văn Khác",
         "role": "member", "status": "active", "created_at": "2024-01-04T00:00:00+00:00"},
    ]


@pytest.fixture
def admin() -> Profile:
    return Profile(**profile_rows()[0])


@pytest.fixture
def editor() -> Profile:
    return Profile(**profile_rows()[1])


@pytest.fixture
def member() -> Profile:
    return Profile(**profile_rows()[2])


@pytest.fixture
def other_member() -> Profile:
    return Profile(**profile_rows()[3])


# =============================================================================
# Backends
# =============================================================================

@pytest.fixture
def repo() -> InMemoryRepository:
    """In-memory data store seeded with one profile per role."""
    return InMemoryRepository(seed={"profiles": profile_rows()})


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def mailbox() -> InMemoryEmailSender:
    return InMemoryEmailSender()


@pytest.fixture
def notifier() -> MagicMock:
    """Stands in for the Celery dispatch of contribution emails."""
    return MagicMock(name="enqueue_contribution_notification")


# =============================================================================
# HTTP
# =============================================================================

class AuthSwitch:
    """Controls which user the TestClient is signed in as."""

    def __init__(self):
        self.user: AuthUser | None = None

    def login(self, profile: Profile) -> None:
        self.user = AuthUser(id=UUID(profile.id), email=profile.email)

    def logout(self) -> None:
        self.user = None

    def current(self) -> AuthUser:
        from app.exceptions import UnauthorizedError

        if self.user is None:
            raise UnauthorizedError()
        return self.user


@pytest.fixture
def auth() -> AuthSwitch:
    return AuthSwitch()


@pytest.fixture
def client(repo, store, mailbox, notifier, auth):
    """TestClient wired to the in-memory fakes."""
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_email_sender] = lambda: mailbox
    app.dependency_overrides[get_contribution_notifier] = lambda: notifier
    app.dependency_overrides[get_current_user] = auth.current

    yield TestClient(app)

    app.dependency_overrides.clear()
