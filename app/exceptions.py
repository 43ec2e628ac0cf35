# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error body has the shape {"error": "<message>", "code": "<CODE>"}
# plus optional suggestion/details. Messages are Vietnamese because they are
# shown verbatim to clan members in the web UI.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class GiaPhaException(Exception):
    """
    Base exception for the Gia Phả API.

    All custom exceptions inherit from this class.
    `extra` is merged into the top level of the response body, which lets a
    route keep fields the web client expects (e.g. {"passed": false}).
    """

    def __init__(
        self,
        message: str,
        code: str = "GIAPHA_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        result.update(self.extra)
        return result


# =============================================================================
# Request / Permission Exceptions
# =============================================================================

class InvalidInputError(GiaPhaException):
    """Raised when a request body or payload fails validation."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            status_code=400,
            details=details,
            extra=extra,
        )


class UnauthorizedError(GiaPhaException):
    """Raised when a request carries no valid identity."""

    def __init__(self, message: str = "Chưa đăng nhập"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
            suggestion="Đăng nhập lại rồi thử lại",
        )


class ForbiddenError(GiaPhaException):
    """Raised when the caller's role does not allow the operation."""

    def __init__(self, message: str = "Không có quyền thực hiện thao tác này"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


class NotFoundError(GiaPhaException):
    """Raised when a referenced record doesn't exist."""

    def __init__(self, message: str, entity: str | None = None, entity_id: str | None = None):
        details = {}
        if entity:
            details["entity"] = entity
        if entity_id:
            details["id"] = entity_id
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )


# =============================================================================
# Contribution Exceptions
# =============================================================================

class ContributionApplyError(GiaPhaException):
    """
    Raised when an approved contribution cannot be written to the tree.

    The contribution is rolled back to `pending` before this propagates.
    """

    def __init__(self, message: str, contribution_id: str | None = None):
        super().__init__(
            message=message,
            code="CONTRIBUTION_APPLY_FAILED",
            status_code=400,
            suggestion="Sửa nội dung đóng góp hoặc từ chối nó",
            details={"contribution_id": contribution_id} if contribution_id else None,
        )


class ContributionNotPendingError(GiaPhaException):
    """
    Raised when a review targets a contribution that was already decided.

    Not fatal: the body carries the current row so the client can refresh.
    """

    def __init__(self, contribution: dict[str, Any]):
        status = contribution.get("status")
        super().__init__(
            message=f"Đóng góp này đã được xử lý (trạng thái: {status})",
            code="CONTRIBUTION_NOT_PENDING",
            status_code=400,
            extra={"data": contribution, "applied": False},
        )


# =============================================================================
# Upload Exceptions
# =============================================================================

class QuotaExceededError(GiaPhaException):
    """Raised when a member has reached their media upload quota."""

    def __init__(self, used: int, limit: int):
        super().__init__(
            message=f"Bạn đã đạt giới hạn {limit} file. Xóa bớt file cũ để tải lên thêm.",
            code="QUOTA_EXCEEDED",
            status_code=400,
            details={"used": used, "limit": limit},
        )


class InvalidFileTypeError(GiaPhaException):
    """Raised when uploaded file type is not allowed."""

    def __init__(self, mime_type: str, allowed: list[str]):
        super().__init__(
            message="Loại file không được hỗ trợ. Chỉ chấp nhận: JPG, PNG, WebP, GIF, PDF",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Các định dạng được hỗ trợ: {', '.join(allowed)}",
            details={"mime_type": mime_type, "allowed_types": allowed},
        )


class FileTooLargeError(GiaPhaException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File quá lớn. Giới hạn: {max_mb}MB",
            code="FILE_TOO_LARGE",
            status_code=400,
            suggestion=f"Tải lên tệp nhỏ hơn {max_mb}MB",
            details={"size_mb": round(size_mb, 1), "max_mb": max_mb},
        )


class StorageUploadError(GiaPhaException):
    """Raised when file upload to storage fails."""

    def __init__(self, error: str):
        logger.error(f"Storage upload failed: {error}")
        super().__init__(
            message="Upload thất bại, vui lòng thử lại",
            code="STORAGE_UPLOAD_ERROR",
            status_code=500,
            suggestion="Thử lại sau hoặc liên hệ quản trị viên",
        )


# =============================================================================
# Upstream Exceptions
# =============================================================================

class UpstreamError(GiaPhaException):
    """
    Raised when the data store or another external collaborator fails.

    The caller only sees a generic message; the original error is logged.
    """

    def __init__(self, operation: str, error: Exception | str):
        logger.error(f"Upstream failure during {operation}: {error}")
        super().__init__(
            message="Lỗi hệ thống, vui lòng thử lại sau",
            code="UPSTREAM_ERROR",
            status_code=500,
            details={"operation": operation},
        )


class RestoreAbortedError(GiaPhaException):
    """
    Raised when restoring `people` or `families` fails.

    Later tables are never attempted; the body still carries the per-table
    report so the admin can see how far the restore got.
    """

    def __init__(self, table: str, error: str, results: list[dict[str, Any]], total_records: int):
        super().__init__(
            message=f"Lỗi restore bảng {table}: {error}",
            code="RESTORE_ABORTED",
            status_code=500,
            extra={
                "ok": False,
                "partial": True,
                "results": results,
                "totalRecords": total_records,
            },
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def giapha_exception_handler(
    request: Request,
    exc: GiaPhaException
) -> JSONResponse:
    """Convert GiaPhaException to JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request body validation errors.

    Reported as 400 (not FastAPI's default 422) to match the web client.
    """
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": "Dữ liệu không hợp lệ",
            "code": "VALIDATION_ERROR",
            "errors": errors,
        }
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTPException with the same {"error": ...} body shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "code": "HTTP_ERROR"},
        headers=getattr(exc, "headers", None),
    )
