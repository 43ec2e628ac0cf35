# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# Supports both:
# - ES256 (new Supabase JWT signing keys) via JWKS
# - HS256 (legacy Supabase JWT secret) as fallback
#
# Role checks load the caller's `profiles` row:
#   get_current_profile -> any signed-in user
#   require_moderator   -> admin or editor
#   require_admin       -> admin only
#
# Usage:
#   from app.auth import CurrentProfile, AdminProfile
#
#   @router.get("/protected")
#   async def protected(profile: CurrentProfile):
#       return {"role": profile.role}
# =============================================================================

import logging
import time
from typing import Annotated, Optional
from uuid import UUID

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.auth.models import AuthUser
from app.config import settings
from app.dependencies import ProfileServiceDep
from app.exceptions import ForbiddenError, UnauthorizedError
from core.models import Profile
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

# Missing header is reported as our own 401 body, not FastAPI's 403
security = HTTPBearer(auto_error=False)

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour


def _get_jwks_url() -> str:
    """Get the JWKS URL from Supabase URL."""
    supabase_url = settings.SUPABASE_URL.rstrip('/')
    return f"{supabase_url}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict:
    """Fetch JWKS from Supabase with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()

    # Return cached if valid
    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        jwks_url = _get_jwks_url()
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Return cached even if expired, as fallback
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str) -> tuple[str | dict, str]:
    """
    Get the appropriate signing key for a token.

    Returns:
        Tuple of (key, algorithm) to use for verification
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    alg = unverified_header.get("alg", "HS256")
    kid = unverified_header.get("kid")

    if alg == "HS256":
        return settings.SUPABASE_JWT_SECRET, "HS256"

    # ES256 and friends are verified against the project's JWKS
    if kid:
        for key in _fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"Could not find key for alg={alg}, kid={kid}, falling back to HS256")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def decode_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and return its user.

    Raises:
        UnauthorizedError: Invalid, expired or malformed token
    """
    try:
        signing_key, algorithm = _get_signing_key(token)
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=[algorithm],
            audience="authenticated"
        )
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise UnauthorizedError("Phiên đăng nhập đã hết hạn")
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise UnauthorizedError("Token không hợp lệ")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing 'sub' claim")
        raise UnauthorizedError("Token không hợp lệ")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {user_id}")
        raise UnauthorizedError("Token không hợp lệ")

    return AuthUser(id=user_uuid, email=payload.get("email"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    """
    Extract and validate user from Supabase JWT token.

    Raises:
        UnauthorizedError: 401 if the header is missing or the token is bad
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    user = decode_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id}")
    return user


CurrentUser = Annotated[AuthUser, Depends(get_current_user)]


async def get_current_profile(user: CurrentUser, profiles: ProfileServiceDep) -> Profile:
    """The caller's profile (a pending member if none exists yet)."""
    return profiles.get_profile(normalize_uuid(user.id), user.email)


CurrentProfile = Annotated[Profile, Depends(get_current_profile)]


async def require_moderator(profile: CurrentProfile) -> Profile:
    if not profile.is_moderator:
        raise ForbiddenError("Chỉ admin hoặc editor mới được thực hiện")
    return profile


async def require_admin(profile: CurrentProfile) -> Profile:
    if not profile.is_admin:
        raise ForbiddenError("Chỉ admin mới được thực hiện thao tác này")
    return profile


ModeratorProfile = Annotated[Profile, Depends(require_moderator)]
AdminProfile = Annotated[Profile, Depends(require_admin)]
