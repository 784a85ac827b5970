from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..models.attendance import AttendanceStatus, SessionStatus
from .base import ApiModel

# Detail payloads keep `status` as a plain string: membership is checked by
# the attendance service so a bad value surfaces as a validation_error with
# the same message whichever entry point received it.

class AttendanceDetailCreate(ApiModel):
    attendance_id: Optional[int] = None
    student_id: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class AttendanceDetailEntry(ApiModel):
    student_id: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class AttendanceDetailUpdate(ApiModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class AttendanceDetailRead(ApiModel):
    id: int
    attendance_id: int
    student_id: int
    status: AttendanceStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AttendanceCreate(ApiModel):
    session_date: date = Field(alias="date")
    course_id: int
    section_id: Optional[int] = None
    status: Optional[SessionStatus] = None
    notes: Optional[str] = None


class AttendanceUpdate(ApiModel):
    session_date: Optional[date] = Field(default=None, alias="date")
    section_id: Optional[int] = None
    status: Optional[SessionStatus] = None
    notes: Optional[str] = None


class AttendanceRead(ApiModel):
    id: int
    session_date: date = Field(alias="date")
    course_id: int
    section_id: Optional[int] = None
    teacher_id: int
    status: SessionStatus
    notes: Optional[str] = None
    present_count: int
    absent_count: int
    created_at: datetime
    updated_at: datetime


class AttendanceWithDetails(AttendanceRead):
    details: List[AttendanceDetailRead] = []


class RecordAttendanceRequest(ApiModel):
    details: List[AttendanceDetailEntry]
