# =============================================================================
# core/services/audit_service.py - Audit Log
# =============================================================================
# Records who did what (approve/reject/restore...) and serves the admin
# audit viewer. Writing an entry never fails the operation being audited.
# =============================================================================

import logging
from typing import Any

from app.config import settings
from app.exceptions import UpstreamError
from core.models import AuditAction
from core.services.profile_service import ProfileService
from lib.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)


class AuditService:
    """Service for `audit_logs` operations."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def record(
        self,
        actor_id: str | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None = None,
        entity_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """
        Append one audit entry.

        Returns:
            The stored row, or None if the insert failed (logged)
        """
        try:
            return self.repo.insert("audit_logs", {
                "actor_id": actor_id,
                "action": action.value,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "entity_name": entity_name,
                "metadata": metadata,
            })
        except RepositoryError as e:
            logger.warning(f"Failed to write audit log ({action.value} {entity_type}): {e}")
            return None

    def list_logs(
        self,
        page: int = 0,
        action: str | None = None,
        entity_type: str | None = None,
        page_size: int | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        One page of audit entries, newest first, with `actor` attached.

        Args:
            page: 0-based page index
            action: Optional exact action filter (CREATE, APPROVE, ...)
            entity_type: Optional exact entity_type filter

        Returns:
            (rows, total matching rows)
        """
        size = page_size or settings.PAGE_SIZE
        filters: dict[str, Any] = {}
        if action:
            filters["action"] = action
        if entity_type:
            filters["entity_type"] = entity_type

        try:
            rows, total = self.repo.find_page(
                "audit_logs",
                eq=filters,
                offset=max(page, 0) * size,
                limit=size,
            )
        except RepositoryError as e:
            raise UpstreamError("list audit logs", e)

        ProfileService(self.repo).attach_profiles(rows, "actor_id", "actor")
        return rows, total
