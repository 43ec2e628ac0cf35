# =============================================================================
# app/routers/bug_reports.py - Bug Report Endpoints
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from app.auth import AdminProfile, CurrentProfile
from app.dependencies import BugReportServiceDep
from core.models import BugReportCreate, BugReportUpdate

router = APIRouter()


@router.post("/bug-reports", status_code=status.HTTP_201_CREATED)
async def create_bug_report(
    body: BugReportCreate,
    profile: CurrentProfile,
    service: BugReportServiceDep,
):
    return {"data": service.create(profile, body)}


@router.get("/bug-reports")
async def list_bug_reports(
    profile: CurrentProfile,
    service: BugReportServiceDep,
    status_filter: Annotated[str | None, Query(alias="status", description="open/in_progress/resolved/all")] = None,
    page: Annotated[int, Query(ge=0, description="0-based page")] = 0,
):
    """Admins see every report, members only their own; each has `reporter`."""
    rows, total = service.list_reports(profile, status=status_filter, page=page)
    return {"data": rows, "total": total}


@router.get("/bug-reports/{report_id}")
async def get_bug_report(
    report_id: Annotated[str, Path(description="Bug report id")],
    profile: CurrentProfile,
    service: BugReportServiceDep,
):
    return {"data": service.get_report(profile, report_id)}


@router.patch("/bug-reports/{report_id}")
async def update_bug_report(
    report_id: Annotated[str, Path(description="Bug report id")],
    body: BugReportUpdate,
    admin: AdminProfile,
    service: BugReportServiceDep,
):
    return {"data": service.update(report_id, body)}
