"""
FastAPI application for the spacing engine.

Provides REST API for:
- Session planning (due list + weighted pool)
- Answer grading
- Single-decision marking and undo
- Live sessions served card by card
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from loguru import logger

from config import Settings, get_settings
from spacing import __version__
from spacing.api.routers import study_router
from spacing.api.session_registry import SessionRegistry
from spacing.db.association_store import SqlAssociationStore
from spacing.db.database import check_database, init_db
from spacing.engine.models import AssociationStore
from spacing.logging_setup import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    configure_logging(app.state.settings)
    logger.info("Starting spacing service...")
    if app.state.owns_database:
        init_db()

    yield

    # Shutdown
    logger.info("Shutting down spacing service...")


def create_app(
    store: AssociationStore | None = None,
    registry: SessionRegistry | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        store: Association store (defaults to the configured database)
        registry: Live session registry (defaults to a fresh one)
        settings: Settings (defaults to get_settings())
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Spacing Engine",
        description="Spaced-repetition selection and scheduling service.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.owns_database = store is None
    app.state.store = store or SqlAssociationStore()
    app.state.registry = registry or SessionRegistry(ttl_seconds=settings.session_ttl_seconds)

    app.include_router(study_router.router, tags=["Study"])

    @app.get("/health", tags=["Health"])
    def health_check() -> dict[str, Any]:
        """Health check with an actual database round trip when we own the database."""
        db_status, db_error = check_database() if app.state.owns_database else ("external", None)
        result: dict[str, Any] = {
            "status": "healthy" if db_status != "error" else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "database": db_status,
                "live_sessions": len(app.state.registry),
            },
        }
        if db_error:
            result["errors"] = {"database": db_error}
        return result

    return app
