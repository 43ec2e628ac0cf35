# =============================================================================
# core/services/backup_service.py - Backup Export / Restore
# =============================================================================
# A backup is one JSON document:
#
#   {"version": 1, "exported_at": "...", "people": [...], "families": [...], ...}
#
# Restore order is fixed so parents land before dependents:
#   - people, families: full replace (upsert on handle, then delete rows whose
#     handle is not in the backup). A failure here aborts the restore.
#   - everything else: upsert on id only. A failure is recorded for that
#     table and the restore moves on.
# Every run writes one audit entry, whether or not it succeeded.
# =============================================================================

import logging
from typing import Any

from app.config import settings
from app.exceptions import InvalidInputError, RestoreAbortedError, UpstreamError
from core.models import AuditAction, RestoreTableResult
from core.services.audit_service import AuditService
from lib.repository import Repository, RepositoryError, utc_now_iso

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1

# (table, key column) replaced wholesale
FULL_REPLACE_TABLES = (
    ("people", "handle"),
    ("families", "handle"),
)

# (table, conflict column) upserted only
UPSERT_ONLY_TABLES = (
    ("profiles", "id"),
    ("posts", "id"),
    ("post_comments", "id"),
    ("comments", "id"),
    ("events", "id"),
    ("event_rsvps", "id"),
    ("family_questions", "id"),
    ("contributions", "id"),
    ("audit_logs", "id"),
)

BACKUP_TABLES = tuple(t for t, _ in FULL_REPLACE_TABLES + UPSERT_ONLY_TABLES)


class BackupService:
    """Service for whole-database backup and restore."""

    def __init__(self, repo: Repository, chunk_size: int | None = None):
        self.repo = repo
        self.chunk_size = chunk_size or settings.RESTORE_CHUNK_SIZE
        self.audit = AuditService(repo)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export(self) -> dict[str, Any]:
        """Dump every backup table into a restorable document."""
        backup: dict[str, Any] = {"version": BACKUP_VERSION, "exported_at": utc_now_iso()}
        for table in BACKUP_TABLES:
            try:
                backup[table] = self.repo.find_many(table)
            except RepositoryError as e:
                raise UpstreamError(f"export {table}", e)
        logger.info(f"Exported backup: {sum(len(backup[t]) for t in BACKUP_TABLES)} records")
        return backup

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    def restore(self, backup: Any, actor_id: str) -> dict[str, Any]:
        """
        Restore a backup document.

        Returns:
            {"ok", "partial", "results": [...], "totalRecords"}

        Raises:
            InvalidInputError: Not a backup document (nothing written)
            RestoreAbortedError: people/families failed (audit still written)
        """
        rows_by_table = self._validate(backup)
        exported_at = backup["exported_at"]
        results: list[RestoreTableResult] = []

        logger.info(f"Restore started by {actor_id} from backup {exported_at}")

        for index, (table, key_col) in enumerate(FULL_REPLACE_TABLES):
            rows = rows_by_table[table]
            result = self._upsert_table(table, rows, key_col)
            if result.error:
                results.append(result)
                skipped = [t for t, _ in FULL_REPLACE_TABLES[index + 1:] + UPSERT_ONLY_TABLES]
                results.extend(
                    RestoreTableResult(table=t, total=len(rows_by_table[t]), upserted=0)
                    for t in skipped
                )
                total = self._finish(actor_id, exported_at, results)
                logger.error(f"Restore aborted at {table}: {result.error}")
                raise RestoreAbortedError(table, result.error, [r.as_dict() for r in results], total)

            keys = [row.get(key_col) for row in rows if row.get(key_col)]
            result.deleted, result.error = self._delete_orphans(table, key_col, keys)
            results.append(result)

        for table, conflict_col in UPSERT_ONLY_TABLES:
            results.append(self._upsert_table(table, rows_by_table[table], conflict_col))

        total = self._finish(actor_id, exported_at, results)
        has_errors = any(r.error for r in results)
        if has_errors:
            logger.warning(f"Restore finished with errors: {[r.table for r in results if r.error]}")
        else:
            logger.info(f"Restore finished: {total} records")

        return {
            "ok": not has_errors,
            "partial": has_errors,
            "results": [r.as_dict() for r in results],
            "totalRecords": total,
        }

    def _validate(self, backup: Any) -> dict[str, list[dict[str, Any]]]:
        """Check the document shape before any table is touched."""
        if not isinstance(backup, dict):
            raise InvalidInputError("File backup không hợp lệ")
        if not backup.get("exported_at"):
            raise InvalidInputError(
                "File backup thiếu trường exported_at — không phải file backup hợp lệ"
            )

        rows_by_table: dict[str, list[dict[str, Any]]] = {}
        for table in BACKUP_TABLES:
            rows = backup.get(table) or []
            if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
                raise InvalidInputError(
                    f"Bảng {table} trong file backup không hợp lệ",
                    details={"table": table},
                )
            rows_by_table[table] = rows
        return rows_by_table

    def _upsert_table(self, table: str, rows: list[dict[str, Any]], conflict_col: str) -> RestoreTableResult:
        upserted = 0
        for start in range(0, len(rows), self.chunk_size):
            chunk = rows[start:start + self.chunk_size]
            try:
                upserted += self.repo.upsert_batch(table, chunk, on_conflict=conflict_col)
            except RepositoryError as e:
                logger.warning(f"Restore {table} failed after {upserted} rows: {e}")
                return RestoreTableResult(table=table, total=len(rows), upserted=upserted, error=str(e))
        return RestoreTableResult(table=table, total=len(rows), upserted=upserted)

    def _delete_orphans(self, table: str, key_col: str, keys: list[str]) -> tuple[int, str | None]:
        """
        Delete rows whose key is missing from the backup.

        Skipped when the backup has no rows for the table, so an empty
        section never wipes the table.
        """
        if not keys:
            return 0, None
        try:
            current = self.repo.find_many(table, columns=key_col)
            keep = set(keys)
            orphans = [row[key_col] for row in current if row.get(key_col) and row[key_col] not in keep]
            if not orphans:
                return 0, None
            deleted = self.repo.delete(table, in_={key_col: orphans})
            logger.info(f"Deleted {deleted} orphan row(s) from {table}")
            return deleted, None
        except RepositoryError as e:
            logger.warning(f"Could not delete orphans from {table}: {e}")
            return 0, str(e)

    def _finish(self, actor_id: str, exported_at: str, results: list[RestoreTableResult]) -> int:
        total = sum(r.total for r in results)
        self.audit.record(
            actor_id=actor_id,
            action=AuditAction.CREATE,
            entity_type="backup_restore",
            entity_name=f"Restore {total} records từ backup {exported_at}",
            metadata={"exported_at": exported_at, "results": [r.as_dict() for r in results]},
        )
        return total
