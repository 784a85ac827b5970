import logging

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from ..db import get_session
from ..dependencies import get_current_user, require_role
from ..errors import ApiError
from ..models import User, UserRole
from ..responses import envelope
from ..schemas.auth import (
    AuthResponse,
    LoginRequest,
    QrLoginRequest,
    RegisterRequest,
    UpdatePasswordRequest,
    UserRead,
    UserSummary,
)
from ..security import issue_token
from ..services import user_service

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_payload(user: User) -> AuthResponse:
    return AuthResponse(
        token=issue_token(user),
        user=UserSummary(id=user.id, name=user.full_name, email=user.email, role=user.role),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Creates a user account (admin only). Students may be created without a password."""
    user = user_service.create_user(session, body.model_dump())
    return envelope(UserRead.model_validate(user))


@router.post("/login")
def login(body: LoginRequest, session: Session = Depends(get_session)):
    """Exchanges DNI + password for a token and a user summary."""
    user = session.exec(select(User).where(User.dni == body.dni.strip())).first()
    if not user:
        raise ApiError.unauthorized("Invalid credentials")
    if not user.password_hash:
        raise ApiError.unauthorized("This user has no password set for login")
    if not user.check_password(body.password):
        raise ApiError.unauthorized("Invalid credentials")
    if not user.is_active:
        raise ApiError.unauthorized("Inactive user")

    # check_password may have upgraded the stored hash
    session.add(user)
    session.commit()
    return envelope(_auth_payload(user))


@router.post("/qr-login")
@router.post("/login-qr", include_in_schema=False)
def login_with_qr(body: QrLoginRequest, session: Session = Depends(get_session)):
    """Exchanges a scanned QR code (the user's DNI) for a token and a user summary."""
    user = session.exec(select(User).where(User.dni == body.qr_data.strip())).first()
    if not user:
        raise ApiError.unauthorized("User not found")
    if not user.is_active:
        raise ApiError.unauthorized("Inactive user")
    return envelope(_auth_payload(user))


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return envelope(UserRead.model_validate(current_user))


@router.put("/update-password")
def update_password(
    body: UpdatePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not current_user.password_hash:
        raise ApiError.bad_request("This user has no password set")
    if not current_user.check_password(body.current_password):
        raise ApiError.bad_request("Current password is incorrect")
    user_service.change_password(session, current_user, body.new_password)
    return envelope(None, message="Password updated")
