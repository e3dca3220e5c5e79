"""
main.py — InvoiceDesk FastAPI application entry point.

Start with: uvicorn invoicedesk.main:app --reload --port 8000
"""
import logging
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from invoicedesk.config import settings
from invoicedesk.database import build_engine, build_sessionmaker
from invoicedesk.invoices.storage import DocumentStore
from invoicedesk.notifications.mailer import GmailClient

# ---------------------------------------------------------------------------
# Logging — configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


def _run_migrations() -> None:
    package_dir = os.path.dirname(os.path.abspath(__file__))
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
        cwd=package_dir,
    )
    if result.returncode != 0:
        logger.error("Alembic migration failed:\n%s", result.stderr)
        raise RuntimeError(f"Alembic migration failed: {result.stderr}")
    msg = result.stdout.strip() or "No pending migrations"
    logger.info("Alembic: %s", msg)


# ---------------------------------------------------------------------------
# Lifespan — startup & shutdown hooks
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Run Alembic migrations (skipped when RUN_MIGRATIONS=false)
      2. Build the engine + session factory
      3. Shared HTTP client for the mail provider and document storage
    Shutdown:
      1. Close the HTTP client
      2. Dispose the engine
    """
    # --- 1. Database: run Alembic migrations ---
    if settings.run_migrations:
        _run_migrations()

    # --- 2. Database: engine + session factory ---
    app.state.engine = build_engine(settings.database_url, echo=False)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)

    # --- 3. Outbound HTTP clients ---
    app.state.http = httpx.AsyncClient(timeout=settings.http_timeout)
    app.state.mailer = GmailClient(app.state.http, settings.gmail_send_url)
    app.state.documents = DocumentStore(
        app.state.http,
        settings.storage_url,
        settings.storage_bucket,
        settings.storage_service_key,
    )

    logger.info("InvoiceDesk v%s starting up", settings.app_version)
    yield

    # --- Shutdown ---
    await app.state.http.aclose()
    await app.state.engine.dispose()
    logger.info("InvoiceDesk shutting down")


# ---------------------------------------------------------------------------
# Error response helper
# ---------------------------------------------------------------------------
def _make_error_response(
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Build a standard {error: {code, message, details}} response."""
    body = {
        "error": {
            "code": code,
            "message": message,
            "details": details or [],
        }
    }
    return JSONResponse(status_code=status_code, content=body)


_CODE_MAP = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    502: "UPSTREAM_ERROR",
}


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Converts Pydantic / FastAPI 422 validation errors to standard format.
    Returns ALL field violations in one response.
    """
    details = []
    for error in exc.errors():
        # Build dot-notation field path, excluding the top-level 'body' loc
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        details.append({"field": field or None, "issue": error["msg"]})
    return _make_error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details=details,
        status_code=422,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Renders ApiError (domain errors) with their own code and details;
    plain HTTPExceptions (404 route, 405, ...) get a code from the status.
    """
    code = getattr(exc, "code", None) or _CODE_MAP.get(exc.status_code, f"HTTP_{exc.status_code}")
    return _make_error_response(
        code=code,
        message=str(exc.detail),
        details=getattr(exc, "details", None),
        status_code=exc.status_code,
    )


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Catch-all for unexpected errors.
    DEBUG=true  → includes exception type & message in details (dev only).
    DEBUG=false → generic message; full traceback logged server-side only.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=True,
    )
    if settings.debug:
        details = [{"issue": f"{type(exc).__name__}: {exc}"}]
        message = "An unexpected error occurred (debug details included)"
    else:
        details = []
        message = "An unexpected error occurred"
    return _make_error_response(
        code="INTERNAL_ERROR",
        message=message,
        details=details,
        status_code=500,
    )


# ---------------------------------------------------------------------------
# Health endpoint (no auth required)
# ---------------------------------------------------------------------------
async def health_check() -> dict:
    """Returns service health status."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Build the FastAPI app. Tests pass use_lifespan=False and set
    app.state.sessionmaker / mailer / documents themselves.
    """
    from invoicedesk.importer.routes import router as importer_router
    from invoicedesk.invoices.admin_routes import router as admin_router
    from invoicedesk.invoices.routes import router as invoices_router
    from invoicedesk.onboarding.routes import router as onboarding_router

    app = FastAPI(
        title="InvoiceDesk API",
        version=settings.app_version,
        description=(
            "Payroll invoicing portal: spreadsheet import, consultant onboarding, "
            "invoice PDFs emailed to finance, and admin status tracking."
        ),
        lifespan=lifespan if use_lifespan else None,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # CORS — restricted to frontend origins from settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers registered BEFORE routers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_api_route("/api/health", health_check, methods=["GET"], tags=["System"])

    app.include_router(onboarding_router)
    app.include_router(importer_router)
    app.include_router(invoices_router)
    app.include_router(admin_router)
    return app


app = create_app()
