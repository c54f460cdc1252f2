from fastapi import Response

from newsroom.config import settings

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


def cookie_options() -> dict:
    # Both cookies share the refresh lifetime; access validity comes from the JWT exp.
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
        "path": "/",
    }


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    options = cookie_options()
    response.set_cookie(
        ACCESS_TOKEN_COOKIE, access_token, max_age=settings.AUTH_COOKIE_MAX_AGE, **options
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE, refresh_token, max_age=settings.AUTH_COOKIE_MAX_AGE, **options
    )


def clear_auth_cookies(response: Response) -> None:
    options = cookie_options()
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)
