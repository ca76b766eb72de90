"""Double-submit-cookie CSRF protection for the admin forms."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from fastapi import HTTPException, Request, Response

from quill.config import settings

CSRF_COOKIE_NAME = "quill_csrf"
CSRF_HEADER_NAME = "X-CSRF-Token"


def _sign(nonce: str) -> str:
    secret = settings.csrf_secret.encode("utf-8")
    return hmac.new(secret, nonce.encode("ascii"), hashlib.sha256).hexdigest()


def issue_csrf_token(request: Request) -> str:
    """Reuse a valid cookie token or mint a new signed one."""
    token: str | None = getattr(request.state, "csrf_token", None)
    if token:
        return token
    incoming = request.cookies.get(CSRF_COOKIE_NAME)
    if incoming and _is_signed(incoming):
        token = incoming
    else:
        nonce = secrets.token_urlsafe(24)
        token = f"{nonce}.{_sign(nonce)}"
    request.state.csrf_token = token
    return token


def _is_signed(token: str) -> bool:
    nonce, _, sig = token.partition(".")
    return bool(nonce and sig) and hmac.compare_digest(sig, _sign(nonce))


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
        max_age=60 * 60 * 12,
    )


def validate_csrf(request: Request, token: str | None) -> bool:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
    candidate = token or request.headers.get(CSRF_HEADER_NAME)
    if not cookie_token or not candidate:
        raise HTTPException(status_code=403, detail="Invalid CSRF token.")
    if not hmac.compare_digest(cookie_token, candidate):
        raise HTTPException(status_code=403, detail="Invalid CSRF token.")
    if not _is_signed(cookie_token):
        raise HTTPException(status_code=403, detail="Invalid CSRF token.")
    return True
