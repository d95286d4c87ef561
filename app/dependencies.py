"""Session dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, Response

from app.config import get_settings
from app.errors import Unauthorized
from app.services.jwt import get_jwt_service

AUTH_COOKIE_NAME = "token"


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int


def extract_token(request: Request) -> str | None:
    """Read the session token from the Authorization header or the cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get(AUTH_COOKIE_NAME)


def get_current_user(request: Request) -> CurrentUser:
    """Validate the session token. Raises 401 if it is missing, forged or expired."""
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        identity = get_jwt_service().verify_session_token(token)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=e.message) from None

    return CurrentUser(user_id=identity.user_id)


def get_current_user_from_cookie(request: Request) -> CurrentUser | None:
    """Extract user from cookie, return None if missing or invalid."""
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if not token:
        return None

    try:
        identity = get_jwt_service().verify_session_token(token)
    except Unauthorized:
        return None
    return CurrentUser(user_id=identity.user_id)


def set_auth_cookie(response: Response, token: str) -> None:
    """Set the session cookie for the token's full lifetime."""
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=get_settings().COOKIE_SECURE,
        max_age=get_jwt_service().max_age_seconds,
    )


def clear_auth_cookie(response: Response) -> None:
    """Expire the session cookie immediately."""
    response.delete_cookie(
        key=AUTH_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=get_settings().COOKIE_SECURE,
    )
