"""
Password hashes and login tokens.

A login token is an HS256 JWT whose claims are the user's id (``sub``, a
string as JWT requires), the role at the time of login and the expiry.
The role claim is informational; permissions are always checked against
the user row loaded for the request.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, TYPE_CHECKING

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings
from .utils import utcnow

if TYPE_CHECKING:
    from .models.user import User

# argon2 for new hashes; bcrypt hashes from older accounts still verify and get upgraded on login.
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def check_password_hash(password: str, password_hash: str) -> tuple[bool, Optional[str]]:
    """Return ``(matches, replacement)``; `replacement` is a fresh hash when the stored one is deprecated."""
    return pwd_context.verify_and_update(password, password_hash)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str


def issue_token(user: "User", lifetime: Optional[timedelta] = None) -> str:
    expires = utcnow() + (lifetime or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(user.id), "role": user.role.value, "exp": expires}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def read_token(token: str) -> Optional[TokenClaims]:
    """Claims of a valid, unexpired token; None for anything else."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    try:
        return TokenClaims(user_id=int(payload["sub"]), role=str(payload.get("role", "")))
    except (KeyError, TypeError, ValueError):
        return None
