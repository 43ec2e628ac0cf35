# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes are for the profile row that follows signup.
# =============================================================================

import logging

from fastapi import APIRouter

from app.auth.dependencies import CurrentProfile, CurrentUser
from app.auth.models import ProfileResponse
from app.dependencies import ProfileServiceDep
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=ProfileResponse)
async def get_current_user_info(profile: CurrentProfile) -> ProfileResponse:
    """
    Get the current authenticated user's profile.

    Users whose profile row doesn't exist yet are reported as pending
    members.
    """
    return ProfileResponse(**profile.model_dump())


@router.post("/profile", response_model=ProfileResponse)
async def create_profile(user: CurrentUser, profiles: ProfileServiceDep) -> ProfileResponse:
    """
    Create the caller's profile after signup.

    Idempotent: an existing profile (even one already promoted) is
    returned unchanged.
    """
    profile = profiles.ensure_profile(normalize_uuid(user.id), user.email)
    return ProfileResponse(**profile.model_dump())
