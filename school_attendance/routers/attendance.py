from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..db import get_session
from ..dependencies import get_current_user, require_role
from ..errors import ApiError, ConstraintViolation
from ..models import Attendance, Course, SessionStatus, User, UserRole
from ..responses import envelope, paginated
from ..schemas.attendance import (
    AttendanceCreate,
    AttendanceDetailCreate,
    AttendanceDetailRead,
    AttendanceDetailUpdate,
    AttendanceRead,
    AttendanceUpdate,
    AttendanceWithDetails,
    RecordAttendanceRequest,
)
from ..services import attendance_service

router = APIRouter(prefix="/attendances", tags=["attendance"], dependencies=[Depends(get_current_user)])
details_router = APIRouter(prefix="/attendance-details", tags=["attendance"], dependencies=[Depends(get_current_user)])

require_staff = require_role(UserRole.ADMIN, UserRole.TEACHER)


def _get_attendance(session: Session, attendance_id: int) -> Attendance:
    attendance = session.get(Attendance, attendance_id)
    if not attendance:
        raise ApiError.not_found("Attendance session not found")
    return attendance


@router.get("")
def list_attendances(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    course_id: Optional[int] = Query(None, alias="courseId"),
    status: Optional[SessionStatus] = None,
    session_date: Optional[date] = Query(None, alias="date"),
    session: Session = Depends(get_session),
):
    query = select(Attendance)
    if course_id is not None:
        query = query.where(Attendance.course_id == course_id)
    if status:
        query = query.where(Attendance.status == status)
    if session_date:
        query = query.where(Attendance.session_date == session_date)

    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    rows = session.exec(
        query.order_by(Attendance.session_date.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return paginated([AttendanceRead.model_validate(a) for a in rows], total, page, limit)


@router.get("/{attendance_id}")
def get_attendance(attendance_id: int, session: Session = Depends(get_session)):
    return envelope(AttendanceWithDetails.model_validate(_get_attendance(session, attendance_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_attendance(
    body: AttendanceCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_staff),
):
    if not session.get(Course, body.course_id):
        raise ApiError.not_found("Course not found")

    attendance = Attendance(
        session_date=body.session_date,
        course_id=body.course_id,
        section_id=body.section_id,
        teacher_id=current_user.id,
        status=body.status or SessionStatus.PENDING,
        notes=attendance_service.clean_notes(body.notes),
    )
    session.add(attendance)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConstraintViolation("Attendance already exists for this course and date")
    session.refresh(attendance)
    return envelope(AttendanceRead.model_validate(attendance))


@router.put("/{attendance_id}", dependencies=[Depends(require_staff)])
def update_attendance(attendance_id: int, body: AttendanceUpdate, session: Session = Depends(get_session)):
    attendance = _get_attendance(session, attendance_id)
    changes = body.model_dump(exclude_unset=True)
    if "notes" in changes:
        changes["notes"] = attendance_service.clean_notes(changes["notes"])
    for key, value in changes.items():
        if value is not None or key in ("notes", "section_id"):
            setattr(attendance, key, value)
    attendance.touch()
    session.add(attendance)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConstraintViolation("Attendance already exists for this course and date")
    session.refresh(attendance)
    return envelope(AttendanceRead.model_validate(attendance))


@router.delete("/{attendance_id}", dependencies=[Depends(require_role(UserRole.ADMIN))])
def delete_attendance(attendance_id: int, session: Session = Depends(get_session)):
    attendance_service.delete_session(session, attendance_id)
    return envelope({})


@router.get("/{attendance_id}/details")
def list_session_details(attendance_id: int, session: Session = Depends(get_session)):
    details = attendance_service.list_details_for_session(session, attendance_id)
    return envelope([AttendanceDetailRead.model_validate(d) for d in details], count=len(details))


@router.post("/{attendance_id}/details", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_staff)])
def record_session_details(attendance_id: int, body: RecordAttendanceRequest, session: Session = Depends(get_session)):
    entries = [entry.model_dump() for entry in body.details]
    details = attendance_service.record_attendance(session, attendance_id, entries)
    return envelope([AttendanceDetailRead.model_validate(d) for d in details], count=len(details))


@details_router.get("")
def list_details(
    detail_status: str = Query(..., alias="status"),
    attendance_id: Optional[int] = Query(None, alias="attendanceId"),
    session: Session = Depends(get_session),
):
    details = attendance_service.list_details_by_status(session, detail_status, attendance_id)
    return envelope([AttendanceDetailRead.model_validate(d) for d in details], count=len(details))


@details_router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_staff)])
def create_detail(body: AttendanceDetailCreate, session: Session = Depends(get_session)):
    detail = attendance_service.create_detail(
        session, body.attendance_id, body.student_id, body.status, body.notes,
    )
    return envelope(AttendanceDetailRead.model_validate(detail))


@details_router.put("/{detail_id}", dependencies=[Depends(require_staff)])
def update_detail(detail_id: int, body: AttendanceDetailUpdate, session: Session = Depends(get_session)):
    detail = attendance_service.update_detail(session, detail_id, body.model_dump(exclude_unset=True))
    return envelope(AttendanceDetailRead.model_validate(detail))
