# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Provides JWT-based authentication using Supabase Auth, plus role checks
# against the `profiles` table.
#
# Usage:
#   from app.auth import AdminProfile
#
#   @router.get("/admin-only")
#   async def admin_only(admin: AdminProfile):
#       return {"user_id": admin.id}
# =============================================================================

from app.auth.dependencies import (
    AdminProfile,
    CurrentProfile,
    CurrentUser,
    ModeratorProfile,
    decode_token,
    get_current_profile,
    get_current_user,
    require_admin,
    require_moderator,
)
from app.auth.models import AuthUser, ProfileResponse

__all__ = [
    "AdminProfile",
    "CurrentProfile",
    "CurrentUser",
    "ModeratorProfile",
    "decode_token",
    "get_current_profile",
    "get_current_user",
    "require_admin",
    "require_moderator",
    "AuthUser",
    "ProfileResponse",
]
