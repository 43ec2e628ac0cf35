# =============================================================================
# tests/test_bug_reports.py - Bug Report Tests
# =============================================================================
# Run with: pytest tests/test_bug_reports.py -v
# =============================================================================

import pytest

from app.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from core.models import BugReportCreate, BugReportUpdate
from core.services.bug_report_service import BugReportService


@pytest.fixture
def service(repo):
    return BugReportService(repo)


def file_report(service, reporter, **overrides):
    body = {"category": "display_error", "title": "Cây gia phả không hiện", "description": "Trang trắng"}
    body.update(overrides)
    return service.create(reporter, BugReportCreate(**body))


class TestCreate:
    def test_stored_open(self, service, member):
        report = file_report(service, member, steps_to_reproduce="  ")

        assert report["status"] == "open"
        assert report["reporter_id"] == member.id
        assert report["steps_to_reproduce"] is None

    @pytest.mark.parametrize("overrides", [{"title": "  "}, {"description": ""}, {"category": ""}])
    def test_required_fields(self, service, member, overrides):
        with pytest.raises(InvalidInputError) as exc_info:
            file_report(service, member, **overrides)

        assert "bắt buộc" in exc_info.value.message

    def test_unknown_category(self, service, member):
        with pytest.raises(InvalidInputError) as exc_info:
            file_report(service, member, category="crash")

        assert exc_info.value.message == "Category không hợp lệ"


class TestVisibility:
    def test_members_see_own_reports(self, service, member, other_member, admin):
        file_report(service, member)
        file_report(service, other_member)

        mine, total = service.list_reports(member)
        _, all_total = service.list_reports(admin)

        assert total == 1
        assert mine[0]["reporter"] == {"id": member.id, "display_name": member.display_name, "email": member.email}
        assert all_total == 2

    def test_status_filter(self, service, repo, admin, member):
        report = file_report(service, member)
        file_report(service, member)
        service.update(report["id"], BugReportUpdate(status="resolved"))

        rows, total = service.list_reports(admin, status="resolved")

        assert total == 1
        assert rows[0]["id"] == report["id"]

    def test_get_other_members_report(self, service, member, other_member, admin):
        report = file_report(service, member)

        with pytest.raises(ForbiddenError):
            service.get_report(other_member, report["id"])
        assert service.get_report(admin, report["id"])["id"] == report["id"]


class TestUpdate:
    """Tests for admin triage."""

    def test_status_and_note(self, service, member):
        report = file_report(service, member)

        updated = service.update(report["id"], BugReportUpdate(status="in_progress", admin_note="Đang xem"))

        assert updated["status"] == "in_progress"
        assert updated["admin_note"] == "Đang xem"

    def test_note_can_be_cleared(self, service, member):
        report = file_report(service, member)
        service.update(report["id"], BugReportUpdate(admin_note="x"))

        updated = service.update(report["id"], BugReportUpdate(admin_note=None))

        assert updated["admin_note"] is None

    def test_invalid_status(self, service, member):
        report = file_report(service, member)

        with pytest.raises(InvalidInputError):
            service.update(report["id"], BugReportUpdate(status="closed"))

    def test_empty_update(self, service, member):
        report = file_report(service, member)

        with pytest.raises(InvalidInputError):
            service.update(report["id"], BugReportUpdate())

    def test_missing_report(self, service):
        with pytest.raises(NotFoundError):
            service.update("missing", BugReportUpdate(status="resolved"))


class TestBugReportApi:
    def test_create_and_triage(self, client, auth, member, admin):
        auth.login(member)
        response = client.post("/api/v1/bug-reports", json={
            "category": "suggestion",
            "title": "Thêm chế độ tối",
            "description": "Mắt mỏi khi xem ban đêm",
        })
        assert response.status_code == 201
        report_id = response.json()["data"]["id"]

        # Members cannot triage
        response = client.patch(f"/api/v1/bug-reports/{report_id}", json={"status": "resolved"})
        assert response.status_code == 403

        auth.login(admin)
        response = client.patch(f"/api/v1/bug-reports/{report_id}", json={"status": "resolved"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "resolved"
