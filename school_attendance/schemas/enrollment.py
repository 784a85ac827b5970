from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..models.course import EducationalLevel
from ..models.enrollment import EnrollmentStatus, SchoolYearStatus
from .base import ApiModel

SECTION_STATUS_PATTERN = r"^(active|inactive)$"


class SchoolYearCreate(ApiModel):
    name: str = Field(min_length=1)
    start_date: date
    end_date: date
    status: SchoolYearStatus = SchoolYearStatus.ACTIVE


class SchoolYearRead(ApiModel):
    id: int
    name: str
    start_date: date
    end_date: date
    status: SchoolYearStatus


class SchoolYearUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[SchoolYearStatus] = None


class SectionCreate(ApiModel):
    name: str = Field(min_length=1)
    level: EducationalLevel
    grade: int = Field(ge=1, le=6)
    max_students: int = Field(default=30, ge=1, le=50)
    school_year_id: Optional[int] = None
    status: str = Field(default="active", pattern=SECTION_STATUS_PATTERN)


class SectionUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    level: Optional[EducationalLevel] = None
    grade: Optional[int] = Field(default=None, ge=1, le=6)
    max_students: Optional[int] = Field(default=None, ge=1, le=50)
    school_year_id: Optional[int] = None
    status: Optional[str] = Field(default=None, pattern=SECTION_STATUS_PATTERN)


class SectionRead(ApiModel):
    id: int
    name: str
    level: EducationalLevel
    grade: int
    max_students: int
    current_students: int
    school_year_id: Optional[int] = None
    status: str


class EnrollmentCreate(ApiModel):
    student_id: int
    section_id: int
    school_year_id: int


class EnrollmentRead(ApiModel):
    id: int
    student_id: int
    section_id: int
    school_year_id: int
    status: EnrollmentStatus
    enrollment_date: datetime


class StudentSummary(ApiModel):
    id: int
    first_name: str
    last_name: str
    dni: str


class BulkEnrollmentResult(ApiModel):
    total_processed: int
    success_count: int
    skipped: List[str] = []
    created_enrollments: List[EnrollmentRead] = []
