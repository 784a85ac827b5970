"""
Recording per-student attendance.

Every write to ``AttendanceDetail`` goes through this module. Validation is
explicit (``validate_detail``); uniqueness of (session, student) is left to
the database constraint and the resulting ``IntegrityError`` is reported as
``ConstraintViolation``, so two racing writers cannot both succeed.
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..errors import ApiError, ConstraintViolation, ValidationError
from ..models import (
    ATTENDED_STATUSES,
    Attendance,
    AttendanceDetail,
    AttendanceStatus,
    SessionStatus,
    User,
    UserRole,
)

log = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("status", "notes")


def parse_status(value: Any, field: str = "status") -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid attendance status {value!r}; expected one of: {allowed}", field=field)


def clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    return str(notes).strip()


def validate_detail(
    attendance_id: Optional[int],
    student_id: Optional[int],
    status: Any = None,
    notes: Optional[str] = None,
) -> dict:
    """Check a new detail's fields and return them normalised (status defaulted, notes trimmed)."""
    if attendance_id is None:
        raise ValidationError("attendanceId is required", field="attendanceId")
    if student_id is None:
        raise ValidationError("studentId is required", field="studentId")
    return {
        "attendance_id": attendance_id,
        "student_id": student_id,
        "status": AttendanceStatus.PRESENT if status is None else parse_status(status),
        "notes": clean_notes(notes),
    }


def _require_session(session: Session, attendance_id: int) -> Attendance:
    attendance = session.get(Attendance, attendance_id)
    if not attendance:
        raise ApiError.not_found("Attendance session not found")
    return attendance


def _require_student(session: Session, student_id: int) -> User:
    student = session.get(User, student_id)
    if not student or student.role != UserRole.STUDENT:
        raise ValidationError(f"Student {student_id} not found", field="studentId")
    return student


def _add_details(session: Session, rows: List[dict]) -> List[AttendanceDetail]:
    details = [AttendanceDetail(**fields) for fields in rows]
    session.add_all(details)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        pairs = [{"attendanceId": f["attendance_id"], "studentId": f["student_id"]} for f in rows]
        log.warning("Duplicate attendance detail rejected: %s", pairs)
        raise ConstraintViolation(
            "Attendance already recorded for this student in this session",
            errors=pairs if len(pairs) > 1 else pairs[0],
        )
    return details


def refresh_counts(session: Session, attendance: Attendance) -> None:
    """Recompute the session's present/absent counters from its detail rows."""
    rows = session.exec(
        select(AttendanceDetail.status, func.count())
        .where(AttendanceDetail.attendance_id == attendance.id)
        .group_by(AttendanceDetail.status)
    ).all()
    present = absent = 0
    for status, count in rows:
        if status in ATTENDED_STATUSES:
            present += count
        else:
            absent += count
    attendance.present_count = present
    attendance.absent_count = absent
    attendance.touch()
    session.add(attendance)


def create_detail(
    session: Session,
    attendance_id: Optional[int],
    student_id: Optional[int],
    status: Any = None,
    notes: Optional[str] = None,
) -> AttendanceDetail:
    fields = validate_detail(attendance_id, student_id, status, notes)
    attendance = _require_session(session, fields["attendance_id"])
    _require_student(session, fields["student_id"])

    [detail] = _add_details(session, [fields])
    refresh_counts(session, attendance)
    session.commit()
    session.refresh(detail)
    log.info("Recorded %s for student %s in attendance %s", detail.status.value, detail.student_id, detail.attendance_id)
    return detail


def record_attendance(
    session: Session,
    attendance_id: int,
    entries: Iterable[Mapping[str, Any]],
) -> List[AttendanceDetail]:
    """Create one detail per entry in a single transaction; nothing is kept if any entry fails."""
    attendance = _require_session(session, attendance_id)
    rows = []
    for entry in entries:
        fields = validate_detail(attendance_id, entry.get("student_id"), entry.get("status"), entry.get("notes"))
        _require_student(session, fields["student_id"])
        rows.append(fields)
    if not rows:
        raise ValidationError("details must contain at least one entry", field="details")

    created = _add_details(session, rows)
    refresh_counts(session, attendance)
    if attendance.status == SessionStatus.PENDING:
        attendance.status = SessionStatus.TAKEN
    session.commit()
    for detail in created:
        session.refresh(detail)
    log.info("Recorded %d attendance details for attendance %s", len(created), attendance_id)
    return created


def update_detail(session: Session, detail_id: int, patch: Mapping[str, Any]) -> AttendanceDetail:
    """Apply `status` and/or `notes` from `patch`; other keys are ignored."""
    detail = session.get(AttendanceDetail, detail_id)
    if not detail:
        raise ApiError.not_found("Attendance detail not found")

    ignored = set(patch) - set(UPDATABLE_FIELDS)
    if ignored:
        log.debug("Ignoring non-updatable fields on detail %s: %s", detail_id, sorted(ignored))

    if "status" in patch:
        if patch["status"] is None:
            raise ValidationError("status cannot be empty", field="status")
        detail.status = parse_status(patch["status"])
    if "notes" in patch:
        detail.notes = clean_notes(patch["notes"])

    detail.touch()
    session.add(detail)
    refresh_counts(session, detail.attendance)
    session.commit()
    session.refresh(detail)
    log.info("Updated attendance detail %s to %s", detail.id, detail.status.value)
    return detail


def list_details_by_status(
    session: Session,
    status: Any,
    attendance_id: Optional[int] = None,
) -> List[AttendanceDetail]:
    wanted = parse_status(status)
    query = select(AttendanceDetail).where(AttendanceDetail.status == wanted)
    if attendance_id is not None:
        query = query.where(AttendanceDetail.attendance_id == attendance_id)
    return list(session.exec(query).all())


def list_details_for_session(session: Session, attendance_id: int) -> List[AttendanceDetail]:
    _require_session(session, attendance_id)
    return list(session.exec(
        select(AttendanceDetail).where(AttendanceDetail.attendance_id == attendance_id)
    ).all())


def count_by_status(session: Session) -> dict:
    rows = session.exec(select(AttendanceDetail.status, func.count()).group_by(AttendanceDetail.status)).all()
    counts = {s: 0 for s in AttendanceStatus}
    for status, count in rows:
        counts[AttendanceStatus(status)] = count
    return counts


def delete_session(session: Session, attendance_id: int) -> None:
    """Delete an attendance session. Sessions that already hold detail rows are kept."""
    attendance = _require_session(session, attendance_id)
    has_details = session.exec(
        select(func.count()).select_from(AttendanceDetail).where(AttendanceDetail.attendance_id == attendance_id)
    ).one()
    if has_details:
        raise ConstraintViolation("Attendance session has recorded details and cannot be deleted")
    session.delete(attendance)
    session.commit()
    log.info("Deleted attendance session %s", attendance_id)
