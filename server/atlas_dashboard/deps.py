"""Request-scoped accessors for the objects wired onto ``app.state``."""

from fastapi import Request

from .config import Settings
from .services.dashboard import Dashboard


def get_dashboard(request: Request) -> Dashboard:
    return request.app.state.dashboard


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
