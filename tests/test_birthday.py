# =============================================================================
# tests/test_birthday.py - Birthday Notification Tests
# =============================================================================
# Tests for the daily birthday job:
# - Dates are computed at UTC+7
# - Each recipient gets at most one email per person per year
# - A failed send records nothing, so the next run retries
# - Tomorrow's reminder goes to the first active admin only
#
# Run with: pytest tests/test_birthday.py -v
# =============================================================================

from datetime import date, datetime, timezone

import pytest

from core.services.birthday_service import BirthdayService, local_today
from core.services.notification_service import NotificationService, calc_age, format_date


# 18:00 UTC on 14 March is 01:00 on 15 March in Vietnam
RUN_AT = datetime(2025, 3, 14, 18, 0, tzinfo=timezone.utc)

MEMBER_EMAILS = {"admin@giapha.vn", "editor@giapha.vn", "member@giapha.vn", "other@giapha.vn"}


@pytest.fixture
def service(repo, mailbox):
    repo.insert("people", {"handle": "P001", "display_name": "Phạm Văn Tổ", "birth_date": "1950-03-15",
                           "is_living": True, "generation": 2})
    repo.insert("people", {"handle": "P002", "display_name": "Phạm Thị Mai", "birth_date": "1990-03-16",
                           "is_living": True, "generation": 4})
    repo.insert("people", {"handle": "P003", "display_name": "Phạm Văn Cố", "birth_date": "1920-03-15",
                           "is_living": False})
    repo.insert("people", {"handle": "P004", "display_name": "Không rõ", "birth_date": None, "is_living": True})
    return BirthdayService(repo, mailbox)


# =============================================================================
# Date helpers
# =============================================================================

class TestDates:
    def test_local_today_crosses_midnight(self):
        """The UTC evening is already the next day in Vietnam."""
        assert local_today(RUN_AT, 7) == date(2025, 3, 15)
        assert local_today(RUN_AT, 0) == date(2025, 3, 14)

    def test_naive_datetime_treated_as_utc(self):
        assert local_today(datetime(2025, 3, 14, 18, 0), 7) == date(2025, 3, 15)

    def test_format_date(self):
        assert format_date("1950-03-15T00:00:00") == "15/03/1950"

    def test_calc_age(self):
        assert calc_age("1950-03-15", date(2025, 3, 15)) == 75
        assert calc_age("1950-03-16", date(2025, 3, 15)) == 74


# =============================================================================
# Run
# =============================================================================

class TestRun:
    """Tests for BirthdayService.run."""

    def test_first_run(self, service, repo, mailbox):
        """Today's living birthdays email everyone; tomorrow's remind one admin."""
        # Act
        result = service.run(RUN_AT)

        # Assert
        assert result == {
            "ok": True,
            "date": "2025-03-15",
            "todayBirthdays": ["P001"],
            "todayEmailsSent": 1,
            "tomorrowBirthdays": ["P002"],
            "tomorrowRemindersSent": 1,
        }

        birthday, reminder = mailbox.sent
        assert set(birthday.to) == MEMBER_EMAILS
        assert birthday.subject == "🎂 Hôm nay là sinh nhật của Phạm Văn Tổ!"
        assert "Tròn 75 tuổi" in birthday.html
        assert reminder.to == ["admin@giapha.vn"]
        assert reminder.subject == "🔔 Nhắc nhở: Ngày mai là sinh nhật của Phạm Thị Mai"
        assert "35 tuổi" in reminder.html

        markers = repo.rows("birthday_notifications")
        assert len(markers) == len(MEMBER_EMAILS) + 1
        assert {"person_handle": "P002_reminder", "sent_year": 2025, "recipient_email": "admin@giapha.vn"}.items() \
            <= next(m for m in markers if m["person_handle"] == "P002_reminder").items()

    def test_second_run_sends_nothing(self, service, mailbox):
        """Running twice on the same day is a no-op the second time."""
        service.run(RUN_AT)
        mailbox.sent.clear()

        result = service.run(RUN_AT)

        assert result["todayEmailsSent"] == 0
        assert result["tomorrowRemindersSent"] == 0
        assert mailbox.sent == []

    def test_new_member_gets_email_on_rerun(self, service, repo, mailbox):
        """A member activated after the first run is still notified once."""
        service.run(RUN_AT)
        mailbox.sent.clear()
        repo.insert("profiles", {"id": "new", "email": "new@giapha.vn", "role": "member", "status": "active"})

        result = service.run(RUN_AT)

        assert result["todayEmailsSent"] == 1
        assert mailbox.sent[0].to == ["new@giapha.vn"]

    def test_send_failure_records_no_marker(self, service, repo, mailbox):
        """If the email fails, the next run tries again."""
        mailbox.fail = True

        result = service.run(RUN_AT)

        assert result["todayEmailsSent"] == 0
        assert repo.rows("birthday_notifications") == []

        mailbox.fail = False
        assert service.run(RUN_AT)["todayEmailsSent"] == 1

    def test_pending_profiles_not_emailed(self, service, repo, mailbox):
        repo.update("profiles", {"status": "pending"}, eq={"email": "other@giapha.vn"})

        service.run(RUN_AT)

        assert "other@giapha.vn" not in mailbox.sent[0].to

    def test_no_admin_no_reminder(self, service, repo, mailbox):
        repo.update("profiles", {"status": "suspended"}, eq={"role": "admin"})

        result = service.run(RUN_AT)

        assert result["tomorrowRemindersSent"] == 0
        assert all(m.to != ["admin@giapha.vn"] for m in mailbox.sent)

    def test_bad_birth_date_skipped(self, service, repo):
        repo.insert("people", {"handle": "P005", "display_name": "Lỗi", "birth_date": "15/03/1960", "is_living": True})

        result = service.run(RUN_AT)

        assert result["todayBirthdays"] == ["P001"]

    def test_next_year_sends_again(self, service, mailbox):
        service.run(RUN_AT)
        mailbox.sent.clear()

        result = service.run(RUN_AT.replace(year=2026))

        assert result["todayEmailsSent"] == 1


# =============================================================================
# Contribution email
# =============================================================================

class TestNewContributionEmail:
    def test_sent_to_admins(self, mailbox):
        sent = NotificationService(mailbox).new_contribution(
            {"field_name": "add_event", "author_email": "member@giapha.vn", "note": "<b>gấp</b>"},
            ["admin@giapha.vn"],
        )

        assert sent is True
        message = mailbox.sent[0]
        assert message.subject == "📬 Đóng góp mới: Đề xuất sự kiện"
        assert "&lt;b&gt;gấp&lt;/b&gt;" in message.html

    def test_no_admins(self, mailbox):
        assert NotificationService(mailbox).new_contribution({"field_name": "add_post"}, []) is False
        assert mailbox.sent == []


# =============================================================================
# Cron endpoint
# =============================================================================

class TestCronApi:
    def test_requires_secret(self, client):
        response = client.get("/api/v1/cron/birthday")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_wrong_secret(self, client):
        response = client.get("/api/v1/cron/birthday", headers={"Authorization": "Bearer wrong"})

        assert response.status_code == 401

    def test_non_ascii_header_rejected(self, client, mailbox):
        """Header bytes outside ASCII are a plain 401, never a server error."""
        response = client.get(
            "/api/v1/cron/birthday",
            headers={"Authorization": "Bearer sécret".encode("utf-8")},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert mailbox.sent == []

    def test_runs_with_secret(self, client, repo, mailbox):
        response = client.get(
            "/api/v1/cron/birthday",
            headers={"Authorization": "Bearer test-cron-secret"},
        )

        assert response.status_code == 200
        assert response.json()["ok"] is True
