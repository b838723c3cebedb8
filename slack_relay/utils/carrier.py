"""Cookie-backed credential carriers for session tokens and OAuth state."""

from __future__ import annotations

import base64
import hmac
from hashlib import sha256
from typing import Literal, Optional

from fastapi import Request, Response

from slack_relay.core.config import AppSettings

SameSite = Literal["lax", "strict", "none"]


class CookieCarrier:
    """Read, write and clear one ``httpOnly`` cookie.

    Keeps cookie attributes in one place so services only see ``str | None``.
    When ``query_param`` is set, ``read`` also accepts the value from that
    query parameter if the cookie is absent.
    """

    def __init__(
        self,
        name: str,
        *,
        max_age: int,
        path: str = "/",
        secure: bool = False,
        samesite: SameSite = "lax",
        domain: Optional[str] = None,
        query_param: Optional[str] = None,
    ) -> None:
        self.name = name
        self.max_age = max_age
        self.path = path
        self.secure = secure
        self.samesite = samesite
        self.domain = domain
        self.query_param = query_param

    def read(self, request: Request) -> Optional[str]:
        value = request.cookies.get(self.name)
        if not value and self.query_param:
            value = request.query_params.get(self.query_param)
        return value or None

    def write(self, response: Response, value: str, ttl: Optional[int] = None) -> None:
        response.set_cookie(
            self.name,
            value,
            max_age=ttl if ttl is not None else self.max_age,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            self.name,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )


class SignedCookieCarrier(CookieCarrier):
    """Cookie carrier whose value is HMAC-signed with a server secret.

    The cookie holds ``<value>.<signature>``; unsigned or tampered values
    read as absent.
    """

    def __init__(self, name: str, *, secret_key: str, **kwargs) -> None:
        if not secret_key:
            raise ValueError("Cookie signing secret must be provided.")
        super().__init__(name, **kwargs)
        self._secret_key = secret_key.encode("utf-8")

    def sign(self, value: str) -> str:
        digest = hmac.new(self._secret_key, value.encode("utf-8"), sha256).digest()
        signature = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
        return f"{value}.{signature}"

    def unsign(self, signed: Optional[str]) -> Optional[str]:
        if not signed:
            return None
        value, sep, _ = signed.rpartition(".")
        if not sep or not value:
            return None
        if not hmac.compare_digest(self.sign(value).encode("utf-8"), signed.encode("utf-8")):
            return None
        return value

    def read(self, request: Request) -> Optional[str]:
        return self.unsign(super().read(request))

    def write(self, response: Response, value: str, ttl: Optional[int] = None) -> None:
        super().write(response, self.sign(value), ttl)


def _cookie_policy(settings: AppSettings) -> tuple[bool, SameSite]:
    # Cross-site frontends need SameSite=None, which browsers only honour with Secure.
    if settings.is_production:
        return True, "none"
    return False, "lax"


def build_session_carrier(settings: AppSettings) -> CookieCarrier:
    secure, samesite = _cookie_policy(settings)
    return CookieCarrier(
        settings.session.token_cookie_name,
        max_age=settings.session.ttl_seconds,
        secure=secure,
        samesite=samesite,
        domain=settings.session.cookie_domain,
        query_param=settings.session.query_param,
    )


def build_user_carrier(settings: AppSettings) -> SignedCookieCarrier:
    secure, samesite = _cookie_policy(settings)
    return SignedCookieCarrier(
        settings.session.user_cookie_name,
        secret_key=settings.security.token_encryption_secret or settings.slack.client_secret,
        max_age=settings.session.ttl_seconds,
        secure=secure,
        samesite=samesite,
        domain=settings.session.cookie_domain,
    )


def build_state_carrier(settings: AppSettings) -> CookieCarrier:
    secure, samesite = _cookie_policy(settings)
    return CookieCarrier(
        settings.oauth.state_cookie_name,
        max_age=settings.oauth.state_ttl_seconds,
        path=settings.oauth.state_cookie_path,
        secure=secure,
        samesite=samesite,
        domain=settings.session.cookie_domain,
    )


__all__ = [
    "CookieCarrier",
    "SignedCookieCarrier",
    "build_session_carrier",
    "build_state_carrier",
    "build_user_carrier",
]
