# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Gia Phả Điện Tử API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import (
    GiaPhaException,
    giapha_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.routers import admin, bug_reports, contributions, cron, health, media, people, registration

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Logs configuration on startup; backends are created lazily on first use.
    """
    logger.info(f"Starting Gia Phả API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if settings.USE_IN_MEMORY_BACKENDS:
        logger.warning("In-memory backends enabled; data is not persisted")
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET not set; /cron endpoints will refuse every call")

    yield

    logger.info("Shutting down Gia Phả API")


# Create FastAPI application
app = FastAPI(
    title="Gia Phả Điện Tử API",
    description="""
## Family Genealogy Backend

Server-side API for a clan's digital family tree.

### Features

- **Registration gate**: sign-ups answer questions only relatives would know
- **Contributions**: members propose changes, admins approve; approval applies
  the change to the tree exactly once
- **Media**: photo/document uploads with per-member quota and moderation
- **Backup/restore**: whole-database JSON export and restore
- **Birthdays**: daily email for today's birthdays and a reminder for tomorrow's

Authenticate with a Supabase access token: `Authorization: Bearer <token>`.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Current user's profile"},
        {"name": "Registration", "description": "Verification quiz for new sign-ups"},
        {"name": "Contributions", "description": "Propose, review and apply changes"},
        {"name": "Media", "description": "Upload and moderate photos and documents"},
        {"name": "People", "description": "Person avatar management"},
        {"name": "Admin", "description": "Audit log, backup and restore"},
        {"name": "Bug Reports", "description": "Report and triage problems"},
        {"name": "Cron", "description": "Scheduled jobs"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(GiaPhaException, giapha_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Lỗi hệ thống",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

API_PREFIX = "/api/v1"

app.include_router(auth_routes.router, prefix=API_PREFIX, tags=["Auth"])
app.include_router(registration.router, prefix=API_PREFIX, tags=["Registration"])
app.include_router(contributions.router, prefix=API_PREFIX, tags=["Contributions"])
app.include_router(media.router, prefix=API_PREFIX, tags=["Media"])
app.include_router(people.router, prefix=API_PREFIX, tags=["People"])
app.include_router(admin.router, prefix=API_PREFIX, tags=["Admin"])
app.include_router(bug_reports.router, prefix=API_PREFIX, tags=["Bug Reports"])
app.include_router(cron.router, prefix=API_PREFIX, tags=["Cron"])
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Gia Phả Điện Tử API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
