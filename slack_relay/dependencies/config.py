"""
FastAPI dependency utilities for injecting configuration.
"""

from typing import Annotated

from fastapi import Depends

from slack_relay.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings."""
    return get_settings()


def get_frontend_url(settings: Annotated[AppSettings, Depends(get_app_settings)]) -> str:
    """Base URL that authorization redirects return the browser to."""
    return settings.frontend_base_url


__all__ = ["get_app_settings", "get_frontend_url"]
