"""Pre-flight check for the relay's environment configuration.

Loads ``AppSettings`` from a ``.env`` file and reports, without echoing any
secret, whether the relay could complete an OAuth round trip with it:

1. required Slack credentials are present and well formed;
2. the OAuth state cookie is scoped so the browser sends it back to the
   configured redirect URI;
3. production deployments use HTTPS origins (cross-site cookies are
   ``Secure``) and never accept session tokens from the query string.

Example usage::

    python -m scripts.check_env --env-file /srv/slack-relay/.env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from urllib.parse import urlparse

from pydantic import ValidationError

from slack_relay.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CONSISTENCY_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]


def _cookie_path_matches(cookie_path: str, request_path: str) -> bool:
    """RFC 6265 path-match: would a cookie scoped to ``cookie_path`` be sent?"""
    if request_path == cookie_path:
        return True
    prefix = cookie_path if cookie_path.endswith("/") else f"{cookie_path}/"
    return request_path.startswith(prefix)


def find_problems(settings: AppSettings) -> list[str]:
    """Return configuration combinations that break the OAuth flow or leak tokens."""
    problems: list[str] = []
    redirect = urlparse(str(settings.slack.redirect_uri))
    state_path = settings.oauth.state_cookie_path

    if not _cookie_path_matches(state_path, redirect.path or "/"):
        problems.append(
            f"OAUTH_STATE_COOKIE_PATH {state_path!r} does not cover the redirect URI "
            f"path {redirect.path!r}; every callback would fail the state check."
        )
    if settings.oauth.state_ttl_seconds <= 0:
        problems.append("OAUTH_STATE_TTL must be positive.")
    if settings.storage.credential_ttl_seconds <= 0:
        problems.append("CREDENTIAL_TTL must be positive.")

    if settings.is_production:
        if redirect.scheme != "https":
            problems.append("SLACK_REDIRECT_URI must use https in production.")
        if urlparse(settings.frontend_base_url).scheme != "https":
            problems.append(
                "FRONTEND_BASE_URL must use https in production; session cookies are Secure."
            )
        if settings.session.query_param:
            problems.append(
                "SESSION_QUERY_PARAM must be unset in production; tokens in URLs end up in logs."
            )
    return problems


def find_warnings(settings: AppSettings) -> list[str]:
    warnings: list[str] = []
    if not settings.slack.bot_token:
        warnings.append(
            "SLACK_BOT_TOKEN is not set; requests without a session will be rejected by Slack."
        )
    if not settings.security.token_encryption_secret:
        warnings.append(
            "TOKEN_ENCRYPTION_SECRET is not set; stored tokens are keyed off the client secret."
        )
    return warnings


def describe_settings(settings: AppSettings) -> str:
    """Summarize loaded settings without echoing any secret."""
    return "\n".join(
        [
            f"environment:      {settings.environment}",
            f"frontend:         {settings.frontend_base_url}",
            f"redirect uri:     {settings.slack.redirect_uri}",
            f"scopes:           {settings.slack.scopes}",
            f"user scopes:      {settings.slack.user_scopes}",
            f"fallback token:   {'set' if settings.slack.bot_token else 'missing'}",
            f"state cookie:     {settings.oauth.state_cookie_name} "
            f"(path {settings.oauth.state_cookie_path}, {settings.oauth.state_ttl_seconds}s)",
            f"credential store: {settings.storage.credential_db_path} "
            f"({settings.storage.credential_ttl_seconds}s)",
        ]
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the relay's .env before starting the service."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print problems and warnings.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if not args.quiet:
        print(describe_settings(settings))
    for warning in find_warnings(settings):
        print(f"warning: {warning}", file=sys.stderr)

    problems = find_problems(settings)
    for problem in problems:
        print(f"error: {problem}", file=sys.stderr)
    return EXIT_CONSISTENCY_ERROR if problems else EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
