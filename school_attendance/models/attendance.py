from typing import List, Optional, TYPE_CHECKING
from datetime import date, datetime, timedelta
from enum import Enum
from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, UniqueConstraint

from ..utils import as_utc, utcnow, value_enum

if TYPE_CHECKING:
    from .course import Course
    from .user import User


class AttendanceStatus(str, Enum):
    """Outcome recorded for one student in one session. Values are the wire format."""
    PRESENT = "Presente"
    ABSENT = "Ausente"
    LATE = "Tardanza"
    EXCUSED = "Justificado"


# Counted towards Attendance.present_count; the rest count as absences.
ATTENDED_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


class SessionStatus(str, Enum):
    PENDING = "Pendiente"
    TAKEN = "Tomada"
    FINISHED = "Finalizada"


def _bump(previous: Optional[datetime]) -> datetime:
    now = utcnow()
    previous = as_utc(previous)
    if previous is not None and now <= previous:
        # Clock resolution can repeat a timestamp; updated_at must still move forward.
        now = previous + timedelta(microseconds=1)
    return now


class Attendance(SQLModel, table=True):
    """One class meeting (course + date) that per-student details are recorded against."""
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("course_id", "session_date", name="uq_attendance_course_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_date: date = Field(index=True)
    course_id: int = Field(foreign_key="courses.id", index=True)
    section_id: Optional[int] = Field(default=None, foreign_key="sections.id")
    teacher_id: int = Field(foreign_key="users.id", index=True)
    status: SessionStatus = Field(
        default=SessionStatus.PENDING,
        sa_column=Column(value_enum(SessionStatus), nullable=False, index=True),
    )
    notes: Optional[str] = None
    present_count: int = Field(default=0)
    absent_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    course: "Course" = Relationship(back_populates="attendances")
    teacher: "User" = Relationship()
    details: List["AttendanceDetail"] = Relationship(back_populates="attendance")

    def touch(self) -> None:
        self.updated_at = _bump(self.updated_at)


class AttendanceDetail(SQLModel, table=True):
    """A single student's status within one attendance session."""
    __tablename__ = "attendance_details"
    __table_args__ = (
        UniqueConstraint("attendance_id", "student_id", name="uq_attendance_detail_student"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    attendance_id: int = Field(foreign_key="attendances.id", index=True)
    student_id: int = Field(foreign_key="users.id", index=True)
    status: AttendanceStatus = Field(
        default=AttendanceStatus.PRESENT,
        sa_column=Column(value_enum(AttendanceStatus), nullable=False, index=True),
    )
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    attendance: Attendance = Relationship(back_populates="details")
    student: "User" = Relationship(back_populates="attendance_details")

    def touch(self) -> None:
        self.updated_at = _bump(self.updated_at)

    def __repr__(self):
        return (
            f"<AttendanceDetail id={self.id} attendance_id={self.attendance_id} "
            f"student_id={self.student_id} status={self.status}>"
        )
