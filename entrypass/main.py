"""
Entry Pass Service

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from entrypass.api.middleware.request_guard import RequestGuardMiddleware
from entrypass.api.middleware.request_id import RequestIdMiddleware
from entrypass.api.responses import error_body, error_response, response_headers
from entrypass.api.v1 import router as api_v1_router
from entrypass.config import get_settings
from entrypass.database import close_db, init_db
from entrypass.errors import INTERNAL_ERROR_MESSAGE, ConfigError, EntryPassError
from entrypass.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Refuses to start without a token signing secret.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    if not settings.entry_jwt_secret:
        logger.critical("ENTRY_JWT_SECRET is not set; refusing to start")
        raise ConfigError("Missing env: ENTRY_JWT_SECRET")
    missing = [m for m in settings.missing_required() if m != "ENTRY_JWT_SECRET"]
    if missing:
        logger.warning("Missing settings: %s", ", ".join(missing))

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Entry pass issuing and event-day check-in.

    - **generate_link** / **send_email** / **bulk_send** (admin): sign pass links and mail them
    - **resolve** (public): show a participant's pass and check-in state
    - **check_in** (public, PIN): approve entry at the gate
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Last added = outermost: request id is assigned before the guard answers
app.add_middleware(RequestGuardMiddleware)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(EntryPassError)
async def entry_pass_exception_handler(request: Request, exc: EntryPassError):
    """Map protocol errors to `{ok: false, error, timestamp}` with CORS headers."""
    if exc.expose:
        logger.info("Request rejected: %s %s", exc.status_code, type(exc).__name__)
    else:
        logger.error("Request failed: %s", exc.message, exc_info=exc)
    return error_response(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and framework errors get the same body shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=response_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions. Detail is only returned outside production."""
    logger.exception("Unhandled exception: %s", exc)
    message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(message),
        headers=response_headers(request),
    )


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
    }


app.include_router(api_v1_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "entrypass.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
