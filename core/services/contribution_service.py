# =============================================================================
# core/services/contribution_service.py - Contribution Pipeline
# =============================================================================
# propose -> review -> apply
#
# Submission validates the payload up front and stores it `pending`.
# Review is an approve-then-apply saga without transactions:
#
#   1. claim:  UPDATE contributions SET status='approved'
#              WHERE id=? AND status='pending'          (compare-and-set)
#   2. apply:  ContributionApplier writes the payload
#   3a. ok:    set applied_at
#   3b. fail:  UPDATE ... SET status='pending' WHERE status='approved'
#              and surface the error, so the admin can fix and retry
#
# Only the request that wins step 1 ever reaches step 2, so a repeated or
# concurrent approval can never apply the same contribution twice.
# =============================================================================

import json
import logging
from typing import Any, Callable

from app.config import settings
from app.exceptions import (
    ContributionNotPendingError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UpstreamError,
)
from core.models import (
    AuditAction,
    ContributionCreate,
    ContributionFieldName,
    ContributionReview,
    ContributionStatus,
    PayloadError,
    Profile,
    parse_payload,
)
from core.models.contribution import FIELD_LABELS, parse_field_name
from core.services.audit_service import AuditService
from core.services.contribution_applier import ContributionApplier
from lib.repository import Repository, RepositoryError, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "contributions"

# Kinds that target an existing person via person_handle
PERSON_TARGETED = (ContributionFieldName.EDIT_PERSON_FIELD, ContributionFieldName.DELETE_PERSON)


class ContributionService:
    """
    Service for contribution submission and review.

    `notifier` is called with the stored row after a submission; it should
    enqueue work and return immediately. Its failures are logged, never
    raised.
    """

    def __init__(
        self,
        repo: Repository,
        notifier: Callable[[dict[str, Any]], None] | None = None,
        applier: ContributionApplier | None = None,
    ):
        self.repo = repo
        self.notifier = notifier
        self.applier = applier or ContributionApplier(repo)
        self.audit = AuditService(repo)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def submit(self, author: Profile, body: ContributionCreate) -> dict[str, Any]:
        """
        Validate and store a new pending contribution.

        Raises:
            InvalidInputError: Unknown field_name, bad payload, missing target
            UpstreamError: Insert failed
        """
        try:
            kind = parse_field_name(body.field_name)
            parse_payload(kind, body.new_value)
        except PayloadError as e:
            raise InvalidInputError(e.message, details={"field": e.field} if e.field else None)

        if kind in PERSON_TARGETED and not body.person_handle:
            raise InvalidInputError("Thiếu thành viên cần chỉnh sửa (personHandle)")

        new_value = body.new_value
        if isinstance(new_value, dict):
            new_value = json.dumps(new_value, ensure_ascii=False)
        elif new_value is None:
            new_value = "{}"

        row = {
            "author_id": author.id,
            "author_email": author.email,
            "person_handle": body.person_handle,
            "person_name": body.person_name,
            "field_name": kind.value,
            "field_label": body.field_label or FIELD_LABELS[kind],
            "old_value": body.old_value,
            "new_value": new_value,
            "note": body.note,
            "status": ContributionStatus.PENDING.value,
        }

        try:
            stored = self.repo.insert(TABLE, row)
        except RepositoryError as e:
            raise UpstreamError("submit contribution", e)

        logger.info(f"Contribution {stored.get('id')} submitted by {author.id} ({kind.value})")
        self._notify(stored)
        return stored

    def _notify(self, contribution: dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(contribution)
        except Exception as e:
            logger.warning(f"Could not dispatch notification for contribution {contribution.get('id')}: {e}")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_contributions(
        self,
        viewer: Profile,
        status: str | None = None,
        page: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Admins see every contribution; everyone else sees their own."""
        filters: dict[str, Any] = {}
        if not viewer.is_admin:
            filters["author_id"] = viewer.id
        if status and status != "all":
            filters["status"] = status

        size = settings.PAGE_SIZE
        try:
            return self.repo.find_page(TABLE, eq=filters, offset=max(page, 0) * size, limit=size)
        except RepositoryError as e:
            raise UpstreamError("list contributions", e)

    def get_contribution(self, viewer: Profile, contribution_id: str) -> dict[str, Any]:
        contribution = self._load(contribution_id)
        if not viewer.is_admin and contribution.get("author_id") != viewer.id:
            raise ForbiddenError("Không có quyền xem đóng góp này")
        return contribution

    def _load(self, contribution_id: str) -> dict[str, Any]:
        try:
            contribution = self.repo.find_one(TABLE, eq={"id": contribution_id})
        except RepositoryError as e:
            raise UpstreamError("load contribution", e)
        if contribution is None:
            raise NotFoundError("Không tìm thấy đóng góp", entity="contribution", entity_id=contribution_id)
        return contribution

    # -------------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------------

    def review(
        self,
        reviewer_id: str,
        contribution_id: str,
        decision: ContributionReview,
    ) -> dict[str, Any]:
        """
        Approve or reject a pending contribution.

        Returns:
            {"data": <row>, "applied": bool, "result": <apply result or None>}

        Raises:
            NotFoundError: No such contribution
            ContributionNotPendingError: Already approved/rejected (body has current row)
            ContributionApplyError / UpstreamError: Apply failed; row is back to pending
        """
        current = self._load(contribution_id)
        if current.get("status") != ContributionStatus.PENDING.value:
            raise ContributionNotPendingError(current)

        claimed = self._claim(contribution_id, reviewer_id, decision)

        if decision.status == ContributionStatus.REJECTED.value:
            self._audit(reviewer_id, AuditAction.REJECT, claimed)
            logger.info(f"Contribution {contribution_id} rejected by {reviewer_id}")
            return {"data": claimed, "applied": False, "result": None}

        try:
            result = self.applier.apply(claimed, reviewer_id)
        except Exception as e:
            logger.warning(f"Apply failed for contribution {contribution_id}, reverting to pending: {e}")
            self._revert_claim(contribution_id)
            raise

        applied = self._mark_applied(claimed)
        self._audit(reviewer_id, AuditAction.APPROVE, applied, result)
        return {"data": applied, "applied": True, "result": result}

    def _claim(
        self,
        contribution_id: str,
        reviewer_id: str,
        decision: ContributionReview,
    ) -> dict[str, Any]:
        values = {
            "status": decision.status,
            "reviewed_by": reviewer_id,
            "reviewed_at": utc_now_iso(),
        }
        if decision.admin_note is not None:
            values["admin_note"] = decision.admin_note

        try:
            claimed = self.repo.conditional_update(
                TABLE,
                values,
                eq={"id": contribution_id},
                expected={"status": ContributionStatus.PENDING.value},
            )
        except RepositoryError as e:
            raise UpstreamError("review contribution", e)

        if claimed is None:
            # Another reviewer decided it between our read and our write
            logger.info(f"Lost review race for contribution {contribution_id}")
            raise ContributionNotPendingError(self._load(contribution_id))
        return claimed

    def _revert_claim(self, contribution_id: str) -> None:
        try:
            reverted = self.repo.conditional_update(
                TABLE,
                {
                    "status": ContributionStatus.PENDING.value,
                    "reviewed_by": None,
                    "reviewed_at": None,
                    "admin_note": None,
                },
                eq={"id": contribution_id},
                expected={"status": ContributionStatus.APPROVED.value},
            )
            if reverted is None:
                logger.error(f"Contribution {contribution_id} was not approved when reverting")
        except RepositoryError as e:
            logger.error(f"Failed to revert contribution {contribution_id} to pending: {e}")

    def _mark_applied(self, contribution: dict[str, Any]) -> dict[str, Any]:
        """
        Stamp applied_at. A failure here is logged only: the status is
        already approved, so nothing can re-apply it.
        """
        try:
            rows = self.repo.update(TABLE, {"applied_at": utc_now_iso()}, eq={"id": contribution["id"]})
            return rows[0] if rows else contribution
        except RepositoryError as e:
            logger.error(f"Contribution {contribution['id']} applied but applied_at not recorded: {e}")
            return contribution

    def _audit(
        self,
        reviewer_id: str,
        action: AuditAction,
        contribution: dict[str, Any],
        result: dict[str, Any] | None = None,
    ) -> None:
        self.audit.record(
            actor_id=reviewer_id,
            action=action,
            entity_type="contribution",
            entity_id=contribution.get("id"),
            entity_name=(
                contribution.get("person_name")
                or contribution.get("field_label")
                or contribution.get("field_name")
            ),
            metadata={
                "field_name": contribution.get("field_name"),
                "person_handle": contribution.get("person_handle"),
                "author_email": contribution.get("author_email"),
                "result": result,
            },
        )
