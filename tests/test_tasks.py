# =============================================================================
# tests/test_tasks.py - Celery Task Tests
# =============================================================================
# The tasks are called directly (no broker); backends are patched where the
# tasks look them up.
#
# Run with: pytest tests/test_tasks.py -v
# =============================================================================

from unittest.mock import patch

import pytest

from workers.config import CeleryConfig
from workers.tasks import (
    enqueue_contribution_notification,
    notify_new_contribution,
    send_birthday_notifications,
)


CONTRIBUTION = {
    "id": "c1",
    "field_name": "add_person",
    "field_label": "Thêm thành viên",
    "author_email": "member@giapha.vn",
    "person_name": "Phạm Văn C",
}


@pytest.fixture
def backends(repo, mailbox):
    with patch("app.dependencies.get_repository", return_value=repo), \
            patch("app.dependencies.get_email_sender", return_value=mailbox):
        yield repo, mailbox


class TestEnqueue:
    def test_publishes_without_retry(self):
        with patch.object(notify_new_contribution, "apply_async") as apply_async:
            enqueue_contribution_notification(CONTRIBUTION)

        apply_async.assert_called_once_with(kwargs={"contribution": CONTRIBUTION}, retry=False)

    def test_disabled(self):
        with patch("workers.tasks.settings") as settings, \
                patch.object(notify_new_contribution, "apply_async") as apply_async:
            settings.NOTIFICATIONS_ENABLED = False
            enqueue_contribution_notification(CONTRIBUTION)

        apply_async.assert_not_called()


class TestNotifyNewContribution:
    """Tests for the admin notification task."""

    def test_emails_active_admins(self, backends):
        repo, mailbox = backends

        result = notify_new_contribution(CONTRIBUTION)

        assert result == {"sent": True, "recipients": 1}
        assert mailbox.sent[0].to == ["admin@giapha.vn"]
        assert "Phạm Văn C" in mailbox.sent[0].html

    def test_no_admins(self, backends):
        repo, mailbox = backends
        repo.update("profiles", {"role": "member"}, eq={"role": "admin"})

        assert notify_new_contribution(CONTRIBUTION) == {"sent": False, "recipients": 0}
        assert mailbox.sent == []

    def test_send_failure_is_reported(self, backends):
        """A failed email is logged and reported, never retried."""
        repo, mailbox = backends
        mailbox.fail = True

        assert notify_new_contribution(CONTRIBUTION) == {"sent": False, "recipients": 1}

    def test_profile_lookup_failure(self, backends):
        repo, _ = backends
        repo.inject_failure("profiles", "select")

        assert notify_new_contribution(CONTRIBUTION)["sent"] is False


class TestBirthdayTask:
    def test_runs_birthday_job(self, backends):
        result = send_birthday_notifications()

        assert result["ok"] is True
        assert result["todayEmailsSent"] == 0

    def test_scheduled_daily(self):
        entry = CeleryConfig.beat_schedule["daily-birthday-notifications"]

        assert entry["task"] == "workers.tasks.send_birthday_notifications"
        assert CeleryConfig.task_routes[entry["task"]] == {"queue": "notifications"}
