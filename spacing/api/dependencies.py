"""FastAPI dependencies resolved from application state."""

from __future__ import annotations

from fastapi import Request

from config import Settings
from spacing.api.session_registry import SessionRegistry
from spacing.engine.models import AssociationStore


def get_store(request: Request) -> AssociationStore:
    return request.app.state.store


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
