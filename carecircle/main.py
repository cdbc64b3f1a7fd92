"""
CareCircle Mirror API - Main Application Entry Point

FastAPI application serving the queryable mirror of ledger outcomes.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from .cache import close_redis, stats as cache_stats
from .database import init_database, close_database, get_database
from .database.exceptions import ValidationError, CompletionConflictError
from .utils.datetime_utils import now_ms

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}...")

    if await init_database():
        logger.info("Mirror database initialized")
    else:
        logger.warning("Mirror database unavailable at startup; will retry on first request")

    yield

    logger.info("Shutting down...")
    try:
        await close_redis()
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close connections during shutdown: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Queryable mirror of CareCircle ledger outcomes",
    version=settings.app_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from .web.routes import router as mirror_router
app.include_router(mirror_router)


@app.get("/")
async def root():
    """API info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Care circle coordination mirror: circles, members, tasks and stats",
    }


@app.get("/health")
async def health_check():
    """Health check with database status."""
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    return {
        "ok": db_health.get("status") == "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "timestamp": now_ms(),
        "database": db_health,
        "cache": {
            "enabled": bool(settings.redis_url),
            **cache_stats.get_summary(),
        },
    }


# Error handlers
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON or path parameters."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(parts) or "Invalid request"})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"Rejected payload on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(CompletionConflictError)
async def completion_conflict_handler(request: Request, exc: CompletionConflictError):
    return JSONResponse(status_code=409, content={"error": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "carecircle.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
