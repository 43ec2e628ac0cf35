# =============================================================================
# core/models/profile.py - Profile Schemas
# =============================================================================
# Every Supabase Auth identity has a parallel `profiles` row carrying the
# clan-level role and whether the account has been activated.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """
    Authorization level.

    - member: can submit contributions, upload media (with quota)
    - editor: can moderate media and set avatars
    - admin: everything, including contribution review and backup/restore
    """
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"


class ProfileStatus(str, Enum):
    """Accounts start pending until an admin activates them."""
    PENDING = "pending"
    ACTIVE = "active"


class Profile(BaseModel):
    """A row from the `profiles` table."""

    id: str = Field(..., description="Same UUID as the Supabase Auth user")
    email: str | None = None
    display_name: str | None = None
    role: Role = Role.MEMBER
    status: ProfileStatus = ProfileStatus.PENDING

    model_config = {"extra": "ignore"}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_moderator(self) -> bool:
        """Admins and editors both moderate media."""
        return self.role in (Role.ADMIN, Role.EDITOR)
