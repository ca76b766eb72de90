"""Security façade for the admin forms."""

from .csrf import (  # noqa: F401
    CSRF_COOKIE_NAME,
    issue_csrf_token,
    set_csrf_cookie,
    validate_csrf,
)

__all__ = [
    "CSRF_COOKIE_NAME",
    "issue_csrf_token",
    "set_csrf_cookie",
    "validate_csrf",
]
