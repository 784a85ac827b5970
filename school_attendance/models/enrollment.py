from typing import List, Optional, TYPE_CHECKING
from datetime import date, datetime
from enum import Enum
from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import UniqueConstraint

from ..utils import utcnow
from .course import EducationalLevel

if TYPE_CHECKING:
    from .user import User


class SchoolYearStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class SchoolYear(SQLModel, table=True):
    __tablename__ = "school_years"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, max_length=50)  # "2025"
    start_date: date
    end_date: date
    status: SchoolYearStatus = Field(default=SchoolYearStatus.ACTIVE)
    created_at: datetime = Field(default_factory=utcnow)

    sections: List["Section"] = Relationship(back_populates="school_year")


class Section(SQLModel, table=True):
    __tablename__ = "sections"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, max_length=100)
    level: EducationalLevel
    grade: int = Field(ge=1, le=6)
    max_students: int = Field(default=30)
    current_students: int = Field(default=0)
    school_year_id: Optional[int] = Field(default=None, foreign_key="school_years.id", index=True)
    status: str = Field(default="active")  # "active" | "inactive"
    created_at: datetime = Field(default_factory=utcnow)

    school_year: Optional[SchoolYear] = Relationship(back_populates="sections")
    enrollments: List["Enrollment"] = Relationship(back_populates="section")

    @property
    def is_full(self) -> bool:
        return self.current_students >= self.max_students


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class Enrollment(SQLModel, table=True):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "section_id", "school_year_id", name="uq_enrollment_unique"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", index=True)
    section_id: int = Field(foreign_key="sections.id", index=True)
    school_year_id: int = Field(foreign_key="school_years.id", index=True)
    status: EnrollmentStatus = Field(default=EnrollmentStatus.ACTIVE)
    enrollment_date: datetime = Field(default_factory=utcnow)

    student: "User" = Relationship(back_populates="enrollments")
    section: Section = Relationship(back_populates="enrollments")
