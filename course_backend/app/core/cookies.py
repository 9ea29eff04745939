"""
Cookie Management Utilities

Centralized cookie handling for session tokens. User sessions ride in the
"auth" cookie, admin sessions in "admin_auth". Cookie max-age (5 days) is
shorter than the token's own 30-day expiry on purpose: the browser drops the
cookie first.
"""
from typing import Optional
from fastapi import Response
from starlette.requests import Request

from app.core.config import Settings

USER_TOKEN_COOKIE = "auth"
ADMIN_TOKEN_COOKIE = "admin_auth"


def _set_token_cookie(response: Response, name: str, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=name,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        domain=settings.cookie_domain,
        max_age=settings.COOKIE_MAX_AGE_SECONDS,
        path="/",
    )


def set_user_cookie(response: Response, token: str, settings: Settings) -> None:
    _set_token_cookie(response, USER_TOKEN_COOKIE, token, settings)


def set_admin_cookie(response: Response, token: str, settings: Settings) -> None:
    _set_token_cookie(response, ADMIN_TOKEN_COOKIE, token, settings)


def clear_user_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=USER_TOKEN_COOKIE, path="/", domain=settings.cookie_domain)


def clear_admin_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=ADMIN_TOKEN_COOKIE, path="/", domain=settings.cookie_domain)


def get_user_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(USER_TOKEN_COOKIE) or None


def get_admin_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(ADMIN_TOKEN_COOKIE) or None
