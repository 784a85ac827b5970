from datetime import datetime
from typing import Optional

from pydantic import Field

from ..models.course import CourseStatus, EducationalLevel
from .base import ApiModel


class CourseCreate(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    level: EducationalLevel
    status: CourseStatus = CourseStatus.ACTIVE


class CourseUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    level: Optional[EducationalLevel] = None
    status: Optional[CourseStatus] = None


class CourseRead(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    level: EducationalLevel
    status: CourseStatus
    created_at: datetime
    updated_at: datetime
