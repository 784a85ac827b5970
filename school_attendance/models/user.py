from typing import List, Optional, TYPE_CHECKING
from datetime import date, datetime
from enum import Enum
from sqlmodel import Field, SQLModel, Relationship

from ..security import check_password_hash, hash_password
from ..utils import utcnow

if TYPE_CHECKING:
    from .attendance import AttendanceDetail
    from .enrollment import Enrollment


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    dni: str = Field(unique=True, index=True, max_length=16)
    email: str = Field(unique=True, index=True, max_length=255)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    gender: Optional[str] = Field(default=None, max_length=1)  # "M" | "F" | "O"
    birthdate: Optional[date] = None
    password_hash: Optional[str] = None
    role: UserRole = Field(default=UserRole.STUDENT, index=True)
    status: UserStatus = Field(default=UserStatus.ACTIVE)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    attendance_details: List["AttendanceDetail"] = Relationship(back_populates="student")
    enrollments: List["Enrollment"] = Relationship(back_populates="student")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def set_password(self, password: str):
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        """Verify `password`, upgrading a deprecated hash in place when passlib asks for it."""
        if not self.password_hash:
            return False
        verified, new_hash = check_password_hash(password, self.password_hash)
        if verified and new_hash:
            self.password_hash = new_hash
        return verified

    def __repr__(self):
        return f"<User id={self.id} {self.full_name} role={self.role}>"
