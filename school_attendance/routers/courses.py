import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_
from sqlmodel import Session, select

from ..db import get_session
from ..dependencies import get_current_user, require_role
from ..errors import ApiError, ConstraintViolation
from ..models import Course, CourseStatus, EducationalLevel, UserRole
from ..responses import envelope, paginated
from ..schemas.course import CourseCreate, CourseRead, CourseUpdate
from ..utils import utcnow

log = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["courses"], dependencies=[Depends(get_current_user)])
require_admin = require_role(UserRole.ADMIN)


def _get_course(session: Session, course_id: int) -> Course:
    course = session.get(Course, course_id)
    if not course:
        raise ApiError.not_found("Course not found")
    return course


def _ensure_name_free(session: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Course).where(Course.name == name)
    if exclude_id is not None:
        query = query.where(Course.id != exclude_id)
    if session.exec(query).first():
        raise ConstraintViolation("A course with this name already exists")


@router.get("")
def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    level: Optional[EducationalLevel] = None,
    status: Optional[CourseStatus] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    query = select(Course)
    if level:
        query = query.where(Course.level == level)
    if status:
        query = query.where(Course.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Course.name.ilike(pattern), Course.description.ilike(pattern)))

    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    courses = session.exec(query.order_by(Course.name).offset((page - 1) * limit).limit(limit)).all()
    return paginated([CourseRead.model_validate(c) for c in courses], total, page, limit)


@router.get("/level/{level}")
def list_courses_by_level(
    level: EducationalLevel,
    status: CourseStatus = CourseStatus.ACTIVE,
    session: Session = Depends(get_session),
):
    query = select(Course).where(Course.status == status)
    if level != EducationalLevel.TODOS:
        query = query.where(Course.level == level)
    courses = session.exec(query.order_by(Course.name)).all()
    return envelope([CourseRead.model_validate(c) for c in courses], count=len(courses))


@router.get("/{course_id}")
def get_course(course_id: int, session: Session = Depends(get_session)):
    return envelope(CourseRead.model_validate(_get_course(session, course_id)))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_course(body: CourseCreate, session: Session = Depends(get_session)):
    name = body.name.strip()
    _ensure_name_free(session, name)
    course = Course(name=name, description=body.description, level=body.level, status=body.status)
    session.add(course)
    session.commit()
    session.refresh(course)
    log.info("Created course %s (%s)", course.id, course.name)
    return envelope(CourseRead.model_validate(course))


@router.put("/{course_id}", dependencies=[Depends(require_admin)])
def update_course(course_id: int, body: CourseUpdate, session: Session = Depends(get_session)):
    course = _get_course(session, course_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        if changes["name"] != course.name:
            _ensure_name_free(session, changes["name"], exclude_id=course.id)
    for key, value in changes.items():
        if value is not None or key == "description":
            setattr(course, key, value)
    course.updated_at = utcnow()
    session.add(course)
    session.commit()
    session.refresh(course)
    return envelope(CourseRead.model_validate(course))


@router.delete("/{course_id}", dependencies=[Depends(require_admin)])
def delete_course(course_id: int, session: Session = Depends(get_session)):
    course = _get_course(session, course_id)
    if course.attendances:
        raise ConstraintViolation("Course has attendance sessions and cannot be deleted")
    session.delete(course)
    session.commit()
    log.info("Deleted course %s", course_id)
    return envelope({}, message="Course deleted")
