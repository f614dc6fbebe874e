"""API routers for the spacing engine."""

from spacing.api.routers import study_router

__all__ = [
    "study_router",
]
