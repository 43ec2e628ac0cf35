# =============================================================================
# tests/ - Test Suite
# =============================================================================
# Unit tests run services against InMemoryRepository; API tests go through
# FastAPI's TestClient with the backends overridden (see conftest.py).
#
# Run tests with: pytest
# =============================================================================
