"""
FastAPI application for the VaaniAI Hindi chatbot backend.

Run with:
    uvicorn vaaniai.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import __version__, database
from .admin_config import admin_config_store
from .config import log_configuration, settings, validate_config
from .database import get_db, init_db
from .exceptions import VaaniError
from .middleware.profiling import ProfilingMiddleware
from .routers import admin, auth, guest, profile, sessions
from .sentry import init_sentry

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.environment == "development" else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def seed_admin_config() -> None:
    """Create the admin API config row from OPENROUTER_API_KEY on first start."""
    db = database.SessionLocal()
    try:
        admin_config_store.seed_from_settings(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: validate and log configuration, create tables, seed the admin
    API config and start Sentry.
    """
    try:
        logger.info("Validating configuration...")
        validate_config()
        log_configuration()

        logger.info("Initializing database tables...")
        init_db()
        seed_admin_config()

        init_sentry(__version__)
        logger.info("Application startup complete")
    except ValueError as e:
        # Configuration validation failed
        logger.error(f"Startup failed: {e}")
        raise

    yield


app = FastAPI(title="VaaniAI API", version=__version__, lifespan=lifespan)

if settings.environment == "development":
    allowed_origins = ["*"]
else:
    allowed_origins = [settings.frontend_url]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=settings.environment != "development",
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)
app.add_middleware(ProfilingMiddleware)


@app.exception_handler(VaaniError)
async def vaani_error_handler(request: Request, exc: VaaniError):
    """Render typed application errors as JSON with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error_type": exc.error_type})


# Global exception handler to ensure all errors return JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and return JSON responses."""
    if isinstance(exc, HTTPException):
        raise exc

    error_type = type(exc).__name__
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {error_type}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "error_type": error_type})


app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(sessions.router)
app.include_router(guest.router)
app.include_router(admin.router)


@app.get("/")
async def root():
    return {"message": "VaaniAI API is running", "version": __version__}


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness plus a database round trip."""
    start = time.time()
    try:
        db.execute(text("SELECT 1")).scalar()
    except Exception as e:
        logger.error(f"[HEALTH] Database check failed: {type(e).__name__}: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "db_connected": False, "duration_ms": int((time.time() - start) * 1000)},
        )
    return {"status": "healthy", "db_connected": True, "duration_ms": int((time.time() - start) * 1000)}
