# =============================================================================
# core/services/profile_service.py - Profile Lookups
# =============================================================================
# Profiles carry role/status for each auth identity. This service loads the
# caller's profile, creates it on first login, and answers the recipient
# queries the notification paths need.
# =============================================================================

import logging
from typing import Any

from app.exceptions import UpstreamError
from core.models import Profile, ProfileStatus, Role
from lib.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for `profiles` table operations."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def get_profile(self, user_id: str, email: str | None = None) -> Profile:
        """
        Load a user's profile.

        A missing row means the create-profile call hasn't run yet; the user
        is treated as a pending member until it does.

        Raises:
            UpstreamError: If the profiles query fails
        """
        try:
            row = self.repo.find_one("profiles", eq={"id": user_id})
        except RepositoryError as e:
            raise UpstreamError("load profile", e)

        if row is None:
            return Profile(id=user_id, email=email)
        return Profile(**row)

    def ensure_profile(self, user_id: str, email: str | None) -> Profile:
        """
        Create the caller's profile as a pending member if it doesn't exist.

        Existing rows (possibly already promoted to admin) are left as-is.
        """
        try:
            self.repo.upsert_batch(
                "profiles",
                [{
                    "id": user_id,
                    "email": email,
                    "role": Role.MEMBER.value,
                    "status": ProfileStatus.PENDING.value,
                }],
                on_conflict="id",
                ignore_duplicates=True,
            )
        except RepositoryError as e:
            raise UpstreamError("create profile", e)

        logger.info(f"Ensured profile for user {user_id}")
        return self.get_profile(user_id, email)

    # -------------------------------------------------------------------------
    # Recipients
    # -------------------------------------------------------------------------

    def active_admin_emails(self) -> list[str]:
        rows = self.repo.find_many(
            "profiles",
            columns="email",
            eq={"role": Role.ADMIN.value, "status": ProfileStatus.ACTIVE.value},
            order_by="created_at",
        )
        return [row["email"] for row in rows if row.get("email")]

    def active_member_emails(self) -> list[str]:
        """Every active account, admins included."""
        rows = self.repo.find_many(
            "profiles",
            columns="email",
            eq={"status": ProfileStatus.ACTIVE.value},
        )
        return [row["email"] for row in rows if row.get("email")]

    # -------------------------------------------------------------------------
    # Enrichment
    # -------------------------------------------------------------------------

    def attach_profiles(
        self,
        rows: list[dict[str, Any]],
        id_key: str,
        target_key: str,
        columns: tuple[str, ...] = ("email", "display_name"),
    ) -> list[dict[str, Any]]:
        """
        Add `target_key: {email, display_name}` to each row from profiles.

        audit_logs.actor_id references auth.users, not profiles, so PostgREST
        cannot embed the join; this is the two-step lookup instead. A failed
        lookup leaves the field as None rather than failing the listing.
        """
        ids = sorted({row[id_key] for row in rows if row.get(id_key)})
        profile_map: dict[str, dict[str, Any]] = {}
        if ids:
            try:
                profiles = self.repo.find_many(
                    "profiles",
                    columns=", ".join(("id",) + columns),
                    in_={"id": ids},
                )
                profile_map = {
                    p["id"]: {col: p.get(col) for col in columns} for p in profiles
                }
            except RepositoryError as e:
                logger.warning(f"Could not load profiles for enrichment: {e}")

        for row in rows:
            row[target_key] = profile_map.get(row.get(id_key)) if row.get(id_key) else None
        return rows
