# =============================================================================
# app/routers/admin.py - Admin Endpoints
# =============================================================================
# Admin-only tools:
#   GET  /audit-logs   paginated audit viewer
#   GET  /backup       download a full backup document
#   POST /restore      restore from a backup document
# =============================================================================

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.auth import AdminProfile
from app.dependencies import AuditServiceDep, BackupServiceDep
from app.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/audit-logs")
async def list_audit_logs(
    admin: AdminProfile,
    service: AuditServiceDep,
    action: Annotated[str | None, Query(description="CREATE/UPDATE/DELETE/APPROVE/REJECT")] = None,
    entity_type: Annotated[str | None, Query(description="e.g. contribution, backup_restore")] = None,
    page: Annotated[int, Query(ge=0, description="0-based page")] = 0,
):
    """Audit entries, newest first, each with `actor: {email, display_name}`."""
    rows, total = service.list_logs(page=page, action=action, entity_type=entity_type)
    return {"ok": True, "data": rows, "total": total}


@router.get("/backup")
async def export_backup(admin: AdminProfile, service: BackupServiceDep):
    logger.info(f"Backup export requested by {admin.id}")
    return service.export()


@router.post("/restore")
async def restore_backup(request: Request, admin: AdminProfile, service: BackupServiceDep):
    """
    Restore a backup document.

    people and families are replaced wholesale; other tables are upserted.
    A people/families failure aborts with 500 and a partial report.
    """
    try:
        backup = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInputError("File backup không hợp lệ (JSON parse error)")

    return service.restore(backup, admin.id)
