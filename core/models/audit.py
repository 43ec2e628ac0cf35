# =============================================================================
# core/models/audit.py - Audit Log + Backup Schemas
# =============================================================================

from enum import Enum

from pydantic import BaseModel


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class RestoreTableResult(BaseModel):
    """
    Outcome of restoring one table.

    `deleted` is only set for full-replace tables (people, families).
    """

    table: str
    total: int
    upserted: int
    deleted: int | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
