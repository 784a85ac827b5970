from datetime import date
from typing import Optional

from pydantic import Field

from ..models.user import UserRole, UserStatus
from .auth import DNI_PATTERN, EMAIL_PATTERN, GENDER_PATTERN, RegisterRequest
from .base import ApiModel


class UserCreate(RegisterRequest):
    # Accounts created from the admin screen always get a password.
    password: str = Field(min_length=6)
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(ApiModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    dni: Optional[str] = Field(default=None, pattern=DNI_PATTERN)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    gender: Optional[str] = Field(default=None, pattern=GENDER_PATTERN)
    birthdate: Optional[date] = None


class PasswordReset(ApiModel):
    new_password: str = Field(min_length=6)
