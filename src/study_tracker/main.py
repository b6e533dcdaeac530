"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from study_tracker.api.routes import router
from study_tracker.auth import AuthBackend, create_auth
from study_tracker.config import Settings, get_settings
from study_tracker.errors import StudyTrackerError
from study_tracker.storage.kv_store import KeyValueStore, create_store


def configure_logging(settings: Settings) -> None:
    """Configure structlog: JSON in production, console output otherwise."""
    if settings.is_production:
        # Production: JSON format for machine parsing
        renderer = structlog.processors.JSONRenderer()
        level = logging.INFO
    else:
        # Development: console format for human readability
        renderer = structlog.dev.ConsoleRenderer()
        level = logging.DEBUG
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


async def study_tracker_error_handler(request: Request, exc: StudyTrackerError) -> JSONResponse:
    """Translate domain errors into ``{"error": ...}`` responses."""
    logger.warning(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def create_app(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    auth: AuthBackend | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Application settings (defaults to ``get_settings()``).
        store: Key/value store; built from settings when omitted.
        auth: Token verifier; built from settings when omitted.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.store.close()

    app = FastAPI(title="Study Tracker", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store or create_store(settings)
    app.state.auth = auth or create_auth(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(StudyTrackerError, study_tracker_error_handler)
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Run the application."""
    settings = get_settings()
    uvicorn.run(
        "study_tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
