# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the genealogy business logic:
# - models/: Pydantic schemas (payloads, request bodies, enums)
# - services/: Registration gate, contribution pipeline, media gate,
#   backup/restore, audit, bug reports and birthday notifications
#
# Services take a lib.repository.Repository (and object store / email
# sender where needed) so they run against Supabase or in-memory fakes.
# =============================================================================
