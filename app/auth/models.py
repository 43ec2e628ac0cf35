# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from core.models import ProfileStatus, Role


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    This is the minimal user info available from the token itself,
    without querying the database.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str | None = None


class ProfileResponse(BaseModel):
    """Response of GET /auth/me and POST /auth/profile."""

    id: str
    email: str | None = None
    display_name: str | None = None
    role: Role
    status: ProfileStatus
