"""Account administration: creating, editing, deactivating and removing users."""
import logging
from typing import Any, Mapping, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ..errors import ConstraintViolation, ValidationError
from ..models import Attendance, AttendanceDetail, Enrollment, User, UserStatus
from ..utils import utcnow

log = logging.getLogger(__name__)

EDITABLE_FIELDS = ("first_name", "last_name", "dni", "email", "role", "status", "gender", "birthdate")


def _ensure_unique(session: Session, dni: Optional[str] = None, email: Optional[str] = None,
                   exclude_id: Optional[int] = None) -> None:
    for column, value, label in ((User.dni, dni, "DNI"), (User.email, email, "email")):
        if value is None:
            continue
        query = select(User).where(column == value)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if session.exec(query).first():
            raise ConstraintViolation(f"A user with this {label} already exists")


def _normalise(fields: Mapping[str, Any]) -> dict:
    cleaned = dict(fields)
    for key in ("first_name", "last_name", "dni"):
        if cleaned.get(key) is not None:
            cleaned[key] = cleaned[key].strip()
    if cleaned.get("email") is not None:
        cleaned["email"] = cleaned["email"].strip().lower()
    return cleaned


def create_user(session: Session, fields: Mapping[str, Any]) -> User:
    """Create an account; `password` is optional (students may sign in by QR only)."""
    data = _normalise(fields)
    password = data.pop("password", None)
    _ensure_unique(session, dni=data["dni"], email=data["email"])

    user = User(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None})
    if password:
        user.set_password(password)
    session.add(user)
    session.commit()
    session.refresh(user)
    log.info("Created %s user %s", user.role.value, user.dni)
    return user


def update_user(session: Session, user: User, changes: Mapping[str, Any]) -> User:
    data = {k: v for k, v in _normalise(changes).items() if k in EDITABLE_FIELDS}
    for key in ("first_name", "last_name", "dni", "email", "role", "status"):
        if key in data and data[key] is None:
            raise ValidationError(f"{key} cannot be empty", field=key)
    _ensure_unique(session, dni=data.get("dni"), email=data.get("email"), exclude_id=user.id)

    for key, value in data.items():
        setattr(user, key, value)
    user.updated_at = utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    log.info("Updated user %s (%s)", user.id, ", ".join(sorted(data)) or "no changes")
    return user


def change_password(session: Session, user: User, new_password: str) -> None:
    user.set_password(new_password)
    user.updated_at = utcnow()
    session.add(user)
    session.commit()
    log.info("Password changed for user %s", user.id)


def delete_user(session: Session, user: User) -> None:
    """
    Remove an account that nothing refers to yet. Users with attendance,
    enrollments or sessions they taught must be deactivated instead so
    the history stays intact.
    """
    references = (
        select(func.count()).select_from(AttendanceDetail).where(AttendanceDetail.student_id == user.id),
        select(func.count()).select_from(Enrollment).where(Enrollment.student_id == user.id),
        select(func.count()).select_from(Attendance).where(Attendance.teacher_id == user.id),
    )
    if any(session.exec(query).one() for query in references):
        raise ConstraintViolation(
            f"User {user.id} has attendance or enrollment records; set status to {UserStatus.INACTIVE.value!r} instead"
        )
    session.delete(user)
    session.commit()
    log.info("Deleted user %s", user.id)
