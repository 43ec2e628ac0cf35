# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import re
import secrets
import string
import unicodedata
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Handles both string and UUID objects, ensuring consistent string output.

    Example:
        user_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        user_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Handle Generation
# =============================================================================

HANDLE_MAX_LENGTH = 40
HANDLE_SUFFIX_LENGTH = 4
_HANDLE_ALPHABET = string.ascii_lowercase + string.digits
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    Turn a Vietnamese display name into a lowercase ASCII slug.

    NFD decomposition separates base letters from their diacritics so the
    combining marks (U+0300..U+036F) can be dropped. `đ`/`Đ` are separate
    letters in Unicode, not d + mark, so they are mapped explicitly.

    Example:
        slugify("Nguyễn Văn A")  # "nguyen-van-a"
        slugify("Đặng Thị Đào")  # "dang-thi-dao"
    """
    decomposed = unicodedata.normalize("NFD", name)
    stripped = "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")
    stripped = stripped.replace("đ", "d").replace("Đ", "d")
    slug = _NON_ALNUM.sub("-", stripped.lower()).strip("-")
    return slug[:HANDLE_MAX_LENGTH].rstrip("-")


def generate_handle(display_name: str) -> str:
    """
    Derive a person handle: slug of the name plus a 4-char random suffix.

    Uniqueness is probabilistic; callers retry once on a unique-key conflict.

    Example:
        generate_handle("Nguyễn Văn A")  # "nguyen-van-a-x4f2"
    """
    suffix = "".join(secrets.choice(_HANDLE_ALPHABET) for _ in range(HANDLE_SUFFIX_LENGTH))
    return f"{slugify(display_name)}-{suffix}"


# =============================================================================
# Base Error Class
# =============================================================================

class ApplicationError(Exception):
    """
    Base error class for library-level errors.

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        details: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result
