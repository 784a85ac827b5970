from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Index

from ..utils import utcnow

if TYPE_CHECKING:
    from .attendance import Attendance


class EducationalLevel(str, Enum):
    INICIAL = "Inicial"
    PRIMARIA = "Primaria"
    SECUNDARIA = "Secundaria"
    TODOS = "Todos"


class CourseStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Course(SQLModel, table=True):
    __tablename__ = "courses"
    __table_args__ = (
        Index("ix_course_level", "level"),
        Index("ix_course_status", "status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, max_length=200)
    description: Optional[str] = None
    level: EducationalLevel
    status: CourseStatus = Field(default=CourseStatus.ACTIVE)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    attendances: List["Attendance"] = Relationship(back_populates="course")
