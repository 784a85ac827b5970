from sqlalchemy import func
from sqlmodel import Session, select

from ..models import ATTENDED_STATUSES, Section, User, UserRole
from .attendance_service import count_by_status


def get_dashboard_stats(session: Session) -> dict:
    """Headline counts for the dashboard; presentRate is the share of recorded details that attended."""
    total_students = session.exec(
        select(func.count()).select_from(User).where(User.role == UserRole.STUDENT)
    ).one()
    total_staff = session.exec(
        select(func.count()).select_from(User).where(User.role.in_([UserRole.ADMIN, UserRole.TEACHER]))
    ).one()
    active_sections = session.exec(
        select(func.count()).select_from(Section).where(Section.status == "active")
    ).one()

    counts = count_by_status(session)
    recorded = sum(counts.values())
    attended = sum(counts[s] for s in ATTENDED_STATUSES)
    present_rate = round(attended * 100 / recorded, 1) if recorded else 0

    return {
        "totalStudents": total_students,
        "totalStaff": total_staff,
        "activeSections": active_sections,
        "presentRate": present_rate,
        "attendanceByStatus": {status.value: count for status, count in counts.items()},
    }
