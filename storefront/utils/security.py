"""Admin gate: HTTP Basic password plus a signed session cookie.

A request is admitted when it carries a valid ``admin_session`` cookie or
Basic credentials whose password matches ``ADMIN_PASSWORD`` (the username is
ignored). A successful Basic check mints a fresh cookie so browsers do not
have to resend the password. With no ``ADMIN_PASSWORD`` configured the gate
is open.
"""
import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from storefront.config import Settings, get_settings

logger = logging.getLogger(__name__)

COOKIE_NAME = "admin_session"
SESSION_MAX_AGE_SECONDS = 24 * 60 * 60
SESSION_MAX_AGE_MS = SESSION_MAX_AGE_SECONDS * 1000
MIN_SECRET_LENGTH = 16


class AdminConfigError(RuntimeError):
    pass


@dataclass
class AdminAuth:
    authenticated: bool
    # True when Basic credentials were accepted and a session cookie should be issued
    set_cookie: bool = False


def _now_ms() -> int:
    return int(time.time() * 1000)


def _secret(settings: Settings) -> bytes:
    secret = settings.ADMIN_SECRET
    if not secret or len(secret) < MIN_SECRET_LENGTH:
        raise AdminConfigError(f"ADMIN_SECRET must be set and at least {MIN_SECRET_LENGTH} characters")
    return secret.encode("utf-8")


def sign(value: str, settings: Settings) -> str:
    digest = hmac.new(_secret(settings), value.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def create_session_cookie(settings: Settings, now_ms: Optional[int] = None) -> str:
    timestamp = str(now_ms if now_ms is not None else _now_ms())
    return f"{timestamp}.{sign(timestamp, settings)}"


def verify_session_cookie(raw: Optional[str], settings: Settings, now_ms: Optional[int] = None) -> bool:
    if not raw:
        return False
    timestamp, _, signature = raw.partition(".")
    if not timestamp or not signature:
        return False
    try:
        issued = int(timestamp)
    except ValueError:
        return False
    age = (now_ms if now_ms is not None else _now_ms()) - issued
    if age < 0 or age > SESSION_MAX_AGE_MS:
        return False
    expected = sign(timestamp, settings)
    return hmac.compare_digest(signature.encode("ascii", "replace"), expected.encode("ascii"))


class OptionalHTTPBasic(HTTPBasic):
    """HTTPBasic that reports undecodable credentials as absent, so a valid session cookie still admits."""

    async def __call__(self, request: Request) -> Optional[HTTPBasicCredentials]:
        try:
            return await super().__call__(request)
        except HTTPException:
            return None


http_basic = OptionalHTTPBasic(auto_error=False)


def check_admin(
    settings: Settings,
    session_cookie: Optional[str],
    credentials: Optional[HTTPBasicCredentials],
) -> AdminAuth:
    if not settings.admin_auth_enabled:
        return AdminAuth(authenticated=True)

    if session_cookie:
        try:
            if verify_session_cookie(session_cookie, settings):
                return AdminAuth(authenticated=True)
        except AdminConfigError as e:
            logger.error("Admin session cookie rejected: %s", e)

    if credentials is None:
        return AdminAuth(authenticated=False)
    supplied = credentials.password.encode("utf-8")
    expected = settings.ADMIN_PASSWORD.encode("utf-8")
    if hmac.compare_digest(supplied, expected):
        return AdminAuth(authenticated=True, set_cookie=True)
    return AdminAuth(authenticated=False)


def require_admin(
    response: Response,
    admin_session: Optional[str] = Cookie(None),
    credentials: Optional[HTTPBasicCredentials] = Depends(http_basic),
    settings: Settings = Depends(get_settings),
) -> AdminAuth:
    auth = check_admin(settings, admin_session, credentials)
    if not auth.authenticated:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": 'Basic realm="Admin"'},
        )
    if auth.set_cookie:
        try:
            response.set_cookie(
                COOKIE_NAME,
                create_session_cookie(settings),
                max_age=SESSION_MAX_AGE_SECONDS,
                path="/",
                httponly=True,
                samesite="strict",
            )
        except AdminConfigError as e:
            logger.warning("Basic auth accepted but no session cookie issued: %s", e)
    return auth
