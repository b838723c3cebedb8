"""
FastAPI application entrypoint for the Slack message relay.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slack_relay.api.errors import register_error_handlers
from slack_relay.api.routes import router as api_router
from slack_relay.core.config import get_settings
from slack_relay.core.logging import configure_logging, log_requests

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Slack Message Relay",
        version="0.1.0",
        description="OAuth session handling and message relay for the Slack Web API.",
    )
    app.include_router(api_router)

    register_error_handlers(app)
    app.middleware("http")(log_requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_base_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Origin"],
    )

    logger.info(
        "Relay configured for %s (env=%s, fallback bot token %s)",
        settings.frontend_base_url,
        settings.environment,
        "configured" if settings.slack.bot_token else "missing",
    )
    return app


app = create_app()

__all__ = ["app", "create_app"]
