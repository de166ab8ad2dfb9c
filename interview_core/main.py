"""Interview session engine: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog must run before other package imports: structlog caches
# the processor chain on first use.
from interview_core.core.logging import configure_structlog
from interview_core.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import httpx
import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from interview_core.api.routes import api_router
from interview_core.core.config import get_settings
from interview_core.db import RedisDraftStore, RedisSessionStore, close_redis, get_redis, init_redis
from interview_core.middleware.correlation import get_correlation_id, setup_correlation_middleware
from interview_core.services.autosave import DraftAutosaver
from interview_core.services.evaluator import HttpCodeEvaluator
from interview_core.services.session_manager import SessionManager

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    await init_redis()

    http_client = httpx.AsyncClient(timeout=settings.evaluator_timeout_seconds)
    app.state.session_manager = SessionManager(
        evaluator=HttpCodeEvaluator(http_client, settings),
        store=RedisSessionStore(get_redis()),
        settings=settings,
    )
    logger.info("session_manager_initialized", evaluator_url=settings.evaluator_url)
    app.state.draft_autosaver = DraftAutosaver(RedisDraftStore(get_redis()), settings.autosave_quiet_seconds)

    yield

    logger.info("shutdown_begin")
    await app.state.session_manager.close()
    await app.state.draft_autosaver.close()
    await http_client.aclose()
    await close_redis()
    logger.info("shutdown_complete")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Log HTTPExceptions with a debug_id and return a sanitized body."""
    debug_id = str(uuid.uuid4())
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=request.headers.get("X-User-Id"),
        detail=exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unhandled errors with traceback and return a generic 500."""
    debug_id = str(uuid.uuid4())
    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=request.headers.get("X-User-Id"),
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Timed coding interview session engine",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_correlation_middleware(app)

    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "interview_core.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
