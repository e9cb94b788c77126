"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signoff.config import APP_VERSION, settings
from signoff.db.engine import create_db_engine, create_session_factory
from signoff.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=settings.json_logs)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev)
    if "sqlite" in db_url:
        from signoff.db.base import Base
        import signoff.db.models  # noqa: F401  register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)
    # None selects the SQL-backed directory per request
    if not hasattr(app.state, "org_directory"):
        app.state.org_directory = None

    logger.info("Signoff API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    await engine.dispose()
    logger.info("Signoff API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Signoff API",
        version=APP_VERSION,
        description="Multi-step approval workflows with role, org unit and employee responsibilities.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from signoff.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from signoff.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from signoff.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
