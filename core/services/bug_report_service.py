# =============================================================================
# core/services/bug_report_service.py - Bug Reports
# =============================================================================

import logging
from typing import Any

from app.config import settings
from app.exceptions import ForbiddenError, InvalidInputError, NotFoundError, UpstreamError
from core.models import BugCategory, BugReportCreate, BugReportUpdate, BugStatus, Profile
from core.services.profile_service import ProfileService
from lib.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)

TABLE = "bug_reports"

VALID_CATEGORIES = {c.value for c in BugCategory}
VALID_STATUSES = {s.value for s in BugStatus}


class BugReportService:
    """Members report problems; admins triage them."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def create(self, reporter: Profile, body: BugReportCreate) -> dict[str, Any]:
        title = body.title.strip()
        description = body.description.strip()
        if not body.category or not title or not description:
            raise InvalidInputError("Thiếu thông tin bắt buộc (category, title, description)")
        if body.category not in VALID_CATEGORIES:
            raise InvalidInputError("Category không hợp lệ")

        steps = (body.steps_to_reproduce or "").strip() or None
        try:
            report = self.repo.insert(TABLE, {
                "reporter_id": reporter.id,
                "category": body.category,
                "title": title,
                "description": description,
                "steps_to_reproduce": steps,
                "status": BugStatus.OPEN.value,
            })
        except RepositoryError as e:
            raise UpstreamError("create bug report", e)

        logger.info(f"Bug report {report.get('id')} filed by {reporter.id} ({body.category})")
        return report

    def list_reports(
        self,
        viewer: Profile,
        status: str | None = None,
        page: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Newest first; admins see every report, members only their own."""
        filters: dict[str, Any] = {}
        if not viewer.is_admin:
            filters["reporter_id"] = viewer.id
        if status and status != "all":
            filters["status"] = status

        size = settings.PAGE_SIZE
        try:
            rows, total = self.repo.find_page(TABLE, eq=filters, offset=max(page, 0) * size, limit=size)
        except RepositoryError as e:
            raise UpstreamError("list bug reports", e)

        ProfileService(self.repo).attach_profiles(
            rows, "reporter_id", "reporter", columns=("id", "display_name", "email")
        )
        return rows, total

    def get_report(self, viewer: Profile, report_id: str) -> dict[str, Any]:
        report = self._load(report_id)
        if not viewer.is_admin and report.get("reporter_id") != viewer.id:
            raise ForbiddenError("Không có quyền xem báo lỗi này")
        return report

    def update(self, report_id: str, body: BugReportUpdate) -> dict[str, Any]:
        """Admin triage: change status and/or admin_note."""
        if body.status and body.status not in VALID_STATUSES:
            raise InvalidInputError("Status không hợp lệ")

        updates: dict[str, Any] = {}
        if body.status:
            updates["status"] = body.status
        if "admin_note" in body.model_fields_set:
            updates["admin_note"] = body.admin_note
        if not updates:
            raise InvalidInputError("Không có gì để cập nhật")

        try:
            rows = self.repo.update(TABLE, updates, eq={"id": report_id})
        except RepositoryError as e:
            raise UpstreamError("update bug report", e)
        if not rows:
            raise NotFoundError("Không tìm thấy", entity="bug_report", entity_id=report_id)

        logger.info(f"Bug report {report_id} updated: {sorted(updates)}")
        return rows[0]

    def _load(self, report_id: str) -> dict[str, Any]:
        try:
            report = self.repo.find_one(TABLE, eq={"id": report_id})
        except RepositoryError as e:
            raise UpstreamError("load bug report", e)
        if report is None:
            raise NotFoundError("Không tìm thấy", entity="bug_report", entity_id=report_id)
        return report
