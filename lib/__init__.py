# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable building blocks:
# - repository.py: Repository interface + in-memory implementation
# - supabase_client.py: Supabase singleton + PostgREST-backed Repository
# - object_store.py: Object storage interface + in-memory implementation
# - email_client.py: Resend email sender + in-memory mailbox
# - utils.py: Shared utilities (handles, UUID normalization, base error)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.repository import (
    DuplicateKeyError,
    InMemoryRepository,
    Repository,
    RepositoryError,
)
from lib.object_store import InMemoryObjectStore, ObjectStore, ObjectStoreError
from lib.email_client import EmailSender, EmailSendError, InMemoryEmailSender
from lib.utils import ApplicationError, generate_handle, normalize_uuid, slugify

__all__ = [
    # Repository
    "Repository",
    "RepositoryError",
    "DuplicateKeyError",
    "InMemoryRepository",
    # Object storage
    "ObjectStore",
    "ObjectStoreError",
    "InMemoryObjectStore",
    # Email
    "EmailSender",
    "EmailSendError",
    "InMemoryEmailSender",
    # Utils
    "ApplicationError",
    "generate_handle",
    "normalize_uuid",
    "slugify",
]
