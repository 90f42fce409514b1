"""
Main FastAPI application entry point.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.database import engine, Base, SessionLocal
from app.core.exceptions import GalleryError, RateLimited
from app.core.logging_config import setup_logging
from app.api.router import api_router
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware
from app.services.maintenance import MaintenanceScheduler, run_expiry_sweep
from app.services.password_service import PasswordService

# Import all models to ensure they register with Base.metadata
from app.models import (  # noqa: F401
    BearerToken,
    AccessKey,
    Resource,
    Filter,
    TagDictionaryEntry,
    AdminSetting,
)

setup_logging()
logger = logging.getLogger(__name__)

maintenance = MaintenanceScheduler(SessionLocal, interval_seconds=settings.SWEEP_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting up {settings.APP_NAME} API...")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)
        # Don't fail startup - let the health endpoint report the issue

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            PasswordService(db).current_hash()
            logger.info("Database connectivity verified, admin password hash initialized")
        finally:
            db.close()
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.error(f"[{trace_id}] Database initialization check failed: {e}", exc_info=True)

    # Sweep once at startup, then on the interval
    run_expiry_sweep(SessionLocal)
    if settings.SWEEP_ENABLED:
        maintenance.start()

    yield

    maintenance.shutdown()
    logger.info(f"Shutting down {settings.APP_NAME} API...")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Curated resource gallery with tiered access (anonymous, access key, admin)",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Added first so it runs innermost; logging wraps it
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


def _error(status_code: int, message: str, headers=None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
        headers=headers,
    )


@app.exception_handler(RateLimited)
async def rate_limited_handler(request: Request, exc: RateLimited):
    reset_at = datetime.fromtimestamp(exc.reset_at, tz=timezone.utc).isoformat()
    return _error(
        exc.status_code,
        exc.message,
        headers={
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(exc.reset_at)),
        },
        resetAt=reset_at,
    )


@app.exception_handler(GalleryError)
async def gallery_error_handler(request: Request, exc: GalleryError):
    """Domain errors carry their own status and client-safe message."""
    if exc.status_code >= 500:
        trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))
        logger.error(f"[{trace_id}] {type(exc).__name__} on {request.method} {request.url.path}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and request.url.path.startswith("/api"):
        message = "API endpoint not found"
    return _error(exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))

    logger.error(
        f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )

    if isinstance(exc, SQLAlchemyError):
        message = "Database error"
    else:
        message = str(exc) if settings.DEBUG else "Internal Server Error"

    return _error(500, message, trace_id=trace_id)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
