from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from .config import settings
from .db import get_session
from .errors import ApiError
from .models import User
from .security import read_token


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split(" ", 1)[1].strip() or None
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def get_current_user(request: Request, session: Session = Depends(get_session)) -> User:
    """Resolves the user from a Bearer token (or the auth cookie)."""
    token = _token_from_request(request)
    if not token:
        raise ApiError.unauthorized("No token, authorization denied")

    claims = read_token(token)
    if not claims:
        raise ApiError.unauthorized("Invalid token")

    user = session.get(User, claims.user_id)
    if not user:
        raise ApiError.unauthorized("User not found")
    if not user.is_active:
        raise ApiError.unauthorized("Inactive user")
    return user


def require_role(*roles: str):
    """Dependency factory that ensures a user has one of the required roles."""
    def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ApiError.forbidden("You do not have permission to perform this action")
        return user
    return role_checker
