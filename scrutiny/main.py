"""
Main FastAPI application for the Scrutiny backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scrutiny.config import settings
from scrutiny.database import close_db, init_db
from scrutiny.routers import (
    columns,
    deed_templates,
    deeds,
    documents,
    drafts,
    health,
    history_templates,
    templates,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Scrutiny backend …")
    logger.info("=" * 60)

    # 1 - Database (required; raises on failure)
    await _check_database()

    # 2 - Template storage
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    logger.info("✓ Template directory: %s", os.path.abspath(settings.UPLOAD_DIR))

    logger.info("=" * 60)
    logger.info("  Scrutiny backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Scrutiny backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Scrutiny API",
    description=(
        "**Scrutiny** - legal scrutiny report assembly.\n\n"
        "Upload a Word template, record the deeds of a title chain, and "
        "download the report with its deeds tables, property schedule and "
        "history of title filled in.\n\n"
        "Key endpoints:\n"
        "- `POST /api/templates/upload` - upload a Word template\n"
        "- `POST /api/deeds` - add a deed to a table\n"
        "- `PUT  /api/deed-templates` - particulars template of a deed type\n"
        "- `PUT  /api/history-templates` - history template of a deed type\n"
        "- `POST /api/documents/generate` - download the filled report\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,            prefix="/api/health",            tags=["Health"])
app.include_router(templates.router,         prefix="/api/templates",         tags=["Templates"])
app.include_router(deeds.router,             prefix="/api/deeds",             tags=["Deeds"])
app.include_router(deed_templates.router,    prefix="/api/deed-templates",    tags=["Deed Templates"])
app.include_router(history_templates.router, prefix="/api/history-templates", tags=["History Templates"])
app.include_router(columns.router,           prefix="/api/tables",            tags=["Columns"])
app.include_router(drafts.router,            prefix="/api/drafts",            tags=["Drafts"])
app.include_router(documents.router,         prefix="/api/documents",         tags=["Documents"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root - returns basic service info."""
    return {
        "name": "Scrutiny API",
        "version": "0.1.0",
        "description": "Legal Scrutiny Report Backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "templates": "/api/templates",
            "deeds": "/api/deeds",
            "deed_templates": "/api/deed-templates",
            "history_templates": "/api/history-templates",
            "columns": "/api/tables/{table_type}/columns",
            "drafts": "/api/drafts",
            "generate": "/api/documents/generate",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scrutiny.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
