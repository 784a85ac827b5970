from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_
from sqlmodel import Session, select

from ..db import get_session
from ..dependencies import require_role
from ..errors import ApiError, ValidationError
from ..models import User, UserRole, UserStatus
from ..responses import envelope, paginated
from ..schemas.auth import UserRead
from ..schemas.user import PasswordReset, UserCreate, UserUpdate
from ..services import user_service

require_admin = require_role(UserRole.ADMIN)
router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


def _get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise ApiError.not_found("User not found")
    return user


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = None,
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if user_status:
        query = query.where(User.status == user_status)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.dni.ilike(pattern),
            User.email.ilike(pattern),
        ))

    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    users = session.exec(
        query.order_by(User.last_name, User.first_name).offset((page - 1) * limit).limit(limit)
    ).all()
    return paginated([UserRead.model_validate(u) for u in users], total, page, limit)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, session: Session = Depends(get_session)):
    user = user_service.create_user(session, body.model_dump())
    return envelope(UserRead.model_validate(user))


@router.get("/{user_id}")
def get_user(user_id: int, session: Session = Depends(get_session)):
    return envelope(UserRead.model_validate(_get_user(session, user_id)))


@router.put("/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    user = _get_user(session, user_id)
    changes = body.model_dump(exclude_unset=True)
    if user.id == current_user.id and (
        changes.get("status") == UserStatus.INACTIVE or changes.get("role", UserRole.ADMIN) != UserRole.ADMIN
    ):
        raise ValidationError("You cannot deactivate or demote your own account", field="status")
    return envelope(UserRead.model_validate(user_service.update_user(session, user, changes)))


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    user = _get_user(session, user_id)
    if user.id == current_user.id:
        raise ApiError.bad_request("You cannot delete your own account")
    user_service.delete_user(session, user)
    return envelope({}, message="User deleted")


@router.put("/{user_id}/change-password")
def change_password(user_id: int, body: PasswordReset, session: Session = Depends(get_session)):
    user_service.change_password(session, _get_user(session, user_id), body.new_password)
    return envelope(None, message="Password updated")
