"""Expose constructed client wrappers."""

from .slack_oauth import ExchangeResult, SlackOAuthClient
from .slack_web import SlackApiError, SlackWebClient
from .sqlite_store import SQLiteStore

__all__ = [
    "ExchangeResult",
    "SQLiteStore",
    "SlackApiError",
    "SlackOAuthClient",
    "SlackWebClient",
]
