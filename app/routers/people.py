# =============================================================================
# app/routers/people.py - Person Endpoints
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.auth import ModeratorProfile
from app.dependencies import PeopleServiceDep

router = APIRouter()


# =============================================================================
# Request/Response Models
# =============================================================================

class SetAvatarRequest(BaseModel):
    """Either {"mediaId": "..."} or {"clear": true}."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    media_id: str | None = Field(default=None, description="Published image linked to this person")
    clear: bool = False


class SetAvatarResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    avatar_url: str | None = None


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "/people/{handle}/set-avatar",
    response_model=SetAvatarResponse,
    response_model_by_alias=True,
)
async def set_avatar(
    handle: Annotated[str, Path(description="Person handle")],
    body: SetAvatarRequest,
    moderator: ModeratorProfile,
    service: PeopleServiceDep,
):
    """Set (or clear) a person's avatar from one of their published photos."""
    url = service.set_avatar(handle, media_id=body.media_id, clear=body.clear)
    return SetAvatarResponse(avatar_url=url)
