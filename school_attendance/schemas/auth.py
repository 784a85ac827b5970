from datetime import date, datetime
from typing import Optional

from pydantic import Field

from ..models.user import UserRole, UserStatus
from .base import ApiModel

DNI_PATTERN = r"^\d{8}$"
EMAIL_PATTERN = r"^\S+@\S+\.\S+$"
GENDER_PATTERN = r"^[MFO]$"


class LoginRequest(ApiModel):
    dni: str = Field(min_length=1)
    password: str = Field(min_length=1)


class QrLoginRequest(ApiModel):
    qr_data: str = Field(min_length=1)


class RegisterRequest(ApiModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    dni: str = Field(pattern=DNI_PATTERN)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(default=None, min_length=6)
    role: UserRole = UserRole.STUDENT
    gender: Optional[str] = Field(default=None, pattern=GENDER_PATTERN)
    birthdate: Optional[date] = None


class UpdatePasswordRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


class UserSummary(ApiModel):
    id: int
    name: str
    email: str
    role: UserRole


class AuthResponse(ApiModel):
    token: str
    user: UserSummary


class UserRead(ApiModel):
    id: int
    first_name: str
    last_name: str
    dni: str
    email: str
    role: UserRole
    status: UserStatus
    gender: Optional[str] = None
    birthdate: Optional[date] = None
    created_at: datetime
    updated_at: datetime
