"""
FastAPI routes for the Slack message relay.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from slack_relay.core.errors import AuthorizationError, RelayError
from slack_relay.dependencies import (
    get_authorization_service,
    get_credential_resolver,
    get_frontend_url,
    get_message_gateway,
    get_session_carrier,
    get_session_introspector,
    get_state_carrier,
    get_user_carrier,
)
from slack_relay.schemas import (
    AuthStatusResponse,
    MessageDeleteRequest,
    MessageEditRequest,
    MessageSendRequest,
    SessionUserPayload,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _frontend_redirect(frontend_url: str, **flags: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"{frontend_url}/?{urlencode(flags)}", status_code=HTTPStatus.FOUND
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/slack")
async def start_slack_oauth_flow(
    service: Annotated[Any, Depends(get_authorization_service)],
    state_carrier: Annotated[Any, Depends(get_state_carrier)],
) -> Response:
    """Issue a state nonce and send the browser to the Slack consent screen."""
    authorization_url, nonce = service.start()
    response = RedirectResponse(url=authorization_url, status_code=HTTPStatus.FOUND)
    state_carrier.write(response, nonce)
    return response


@router.get("/auth/slack/callback")
async def handle_slack_oauth_callback(
    request: Request,
    service: Annotated[Any, Depends(get_authorization_service)],
    state_carrier: Annotated[Any, Depends(get_state_carrier)],
    session_carrier: Annotated[Any, Depends(get_session_carrier)],
    user_carrier: Annotated[Any, Depends(get_user_carrier)],
    frontend_url: Annotated[str, Depends(get_frontend_url)],
    code: str | None = Query(None, description="Authorization code returned by Slack."),
    state: str | None = Query(None, description="State nonce echoed back by Slack."),
    error: str | None = Query(None, description="Set by Slack when the user declines."),
) -> Response:
    """Complete the exchange and redirect back to the frontend with the outcome."""
    try:
        record = await service.complete(
            code=code,
            issued_nonce=state_carrier.read(request),
            presented_nonce=state,
            error=error,
        )
    except AuthorizationError as exc:
        logger.warning("Slack authorization failed (%s): %s", exc.reason, exc)
        response = _frontend_redirect(frontend_url, auth_error="1", reason=exc.reason)
    except RelayError as exc:
        logger.error("Slack authorization could not be completed: %s", exc.message, exc_info=exc)
        response = _frontend_redirect(frontend_url, auth_error="1", reason="server_error")
    except Exception:  # pylint: disable=broad-except
        logger.exception("Unexpected failure completing Slack authorization")
        response = _frontend_redirect(frontend_url, auth_error="1", reason="server_error")
    else:
        response = _frontend_redirect(frontend_url, auth_success="1")
        session_carrier.write(response, record.access_token)
        user_carrier.write(response, record.user_id)

    # Single use: the nonce is dropped whatever the outcome.
    state_carrier.clear(response)
    return response


@router.get(
    "/auth/status", response_model=AuthStatusResponse, response_model_exclude_none=True
)
async def get_auth_status(
    request: Request,
    response: Response,
    resolver: Annotated[Any, Depends(get_credential_resolver)],
    introspector: Annotated[Any, Depends(get_session_introspector)],
    session_carrier: Annotated[Any, Depends(get_session_carrier)],
    user_carrier: Annotated[Any, Depends(get_user_carrier)],
) -> AuthStatusResponse:
    """Report whether the caller's session token is still accepted by Slack."""
    status = await introspector.check(resolver.resolve_user_token(request))

    if status.should_clear_session:
        session_carrier.clear(response)
        user_carrier.clear(response)

    if not status.authenticated:
        return AuthStatusResponse(authenticated=False)

    user = status.user
    return AuthStatusResponse(
        authenticated=True,
        user=SessionUserPayload(id=user.id, name=user.name, team=user.team, image=user.image),
    )


@router.get("/auth/logout")
async def logout(
    request: Request,
    service: Annotated[Any, Depends(get_authorization_service)],
    session_carrier: Annotated[Any, Depends(get_session_carrier)],
    user_carrier: Annotated[Any, Depends(get_user_carrier)],
    frontend_url: Annotated[str, Depends(get_frontend_url)],
) -> Response:
    """Forget the stored credential and clear the session cookies."""
    service.logout(user_carrier.read(request))
    response = _frontend_redirect(frontend_url, logout_success="1")
    session_carrier.clear(response)
    user_carrier.clear(response)
    return response


@router.post("/api/messages")
async def send_message(
    payload: MessageSendRequest,
    request: Request,
    resolver: Annotated[Any, Depends(get_credential_resolver)],
    gateway: Annotated[Any, Depends(get_message_gateway)],
) -> dict:
    """Post a message now or schedule it for ``postAt``."""
    return await gateway.send(
        resolver.resolve(request),
        channel=payload.channel,
        text=payload.text,
        schedule_at=payload.post_at,
    )


@router.get("/api/messages")
async def retrieve_messages(
    request: Request,
    resolver: Annotated[Any, Depends(get_credential_resolver)],
    gateway: Annotated[Any, Depends(get_message_gateway)],
    channel: str | None = Query(None, description="Channel ID to read from."),
    ts: str | None = Query(None, description="Exact message timestamp."),
    oldest: str | None = Query(None, description="Inclusive lower bound."),
    latest: str | None = Query(None, description="Inclusive upper bound."),
) -> list:
    return await gateway.list(
        resolver.resolve(request),
        channel=channel,
        at=ts,
        oldest=oldest,
        latest=latest,
    )


@router.put("/api/messages")
async def edit_message(
    payload: MessageEditRequest,
    request: Request,
    resolver: Annotated[Any, Depends(get_credential_resolver)],
    gateway: Annotated[Any, Depends(get_message_gateway)],
) -> dict:
    return await gateway.edit(
        resolver.resolve(request),
        channel=payload.channel,
        ts=None if payload.ts is None else str(payload.ts),
        text=payload.text,
    )


@router.delete("/api/messages")
async def delete_message(
    payload: MessageDeleteRequest,
    request: Request,
    resolver: Annotated[Any, Depends(get_credential_resolver)],
    gateway: Annotated[Any, Depends(get_message_gateway)],
) -> dict:
    return await gateway.delete(
        resolver.resolve(request),
        channel=payload.channel,
        ts=None if payload.ts is None else str(payload.ts),
    )


__all__ = ["router"]
