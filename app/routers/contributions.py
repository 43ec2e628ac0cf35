# =============================================================================
# app/routers/contributions.py - Contribution Endpoints
# =============================================================================
# Members propose changes; admins approve or reject them.
#   POST  /contributions        submit (any signed-in user) -> 201 {data}
#   GET   /contributions        list (admin: all, member: own)
#   GET   /contributions/{id}   one contribution
#   PATCH /contributions/{id}   review (admin) -> {data, applied, result}
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from app.auth import AdminProfile, CurrentProfile
from app.dependencies import ContributionServiceDep
from core.models import ContributionCreate, ContributionReview

router = APIRouter()


@router.post("/contributions", status_code=status.HTTP_201_CREATED)
async def submit_contribution(
    body: ContributionCreate,
    profile: CurrentProfile,
    service: ContributionServiceDep,
):
    """
    Submit a proposed change.

    `newValue` is validated against the payload shape for `fieldName`
    before anything is stored. Admins are emailed in the background.
    """
    return {"data": service.submit(profile, body)}


@router.get("/contributions")
async def list_contributions(
    profile: CurrentProfile,
    service: ContributionServiceDep,
    status_filter: Annotated[str | None, Query(alias="status", description="pending/approved/rejected/all")] = None,
    page: Annotated[int, Query(ge=0, description="0-based page")] = 0,
):
    """List contributions, newest first, 20 per page."""
    rows, total = service.list_contributions(profile, status=status_filter, page=page)
    return {"data": rows, "total": total}


@router.get("/contributions/{contribution_id}")
async def get_contribution(
    contribution_id: Annotated[str, Path(description="Contribution id")],
    profile: CurrentProfile,
    service: ContributionServiceDep,
):
    return {"data": service.get_contribution(profile, contribution_id)}


@router.patch("/contributions/{contribution_id}")
async def review_contribution(
    contribution_id: Annotated[str, Path(description="Contribution id")],
    body: ContributionReview,
    admin: AdminProfile,
    service: ContributionServiceDep,
):
    """
    Approve or reject a pending contribution.

    Approval writes the payload into the family tree. If that fails the
    contribution goes back to pending and the error is returned.
    """
    return service.review(admin.id, contribution_id, body)
