"""FastAPI application entry point."""

import logging
import os
import threading

import structlog
import uvicorn
from fastapi import FastAPI

from nihongo_srs import __version__
from nihongo_srs.api.routes import router
from nihongo_srs.config import Settings, get_settings
from nihongo_srs.session.manager import SessionManager, build_session_manager


def configure_logging() -> None:
    """Configure structlog: JSON in production, console output otherwise."""
    is_production = os.getenv("ENV", "development").lower() == "production"
    if is_production:
        renderer = structlog.processors.JSONRenderer()
        level = logging.INFO
    else:
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


def create_app(
    settings: Settings | None = None, manager: SessionManager | None = None
) -> FastAPI:
    """Build the API around one learner's state."""
    settings = settings or get_settings()
    app = FastAPI(title="Nihongo SRS", version=__version__)
    app.state.settings = settings
    app.state.manager = manager or build_session_manager(settings)
    app.state.manager_lock = threading.Lock()
    app.include_router(router)
    return app


def main() -> None:
    """Run the application."""
    configure_logging()
    settings = get_settings()
    uvicorn.run(
        "nihongo_srs.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
