"""Pydantic schemas for API request/response serialization.

Wire format is camelCase; snake_case field names are accepted on input too.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from portal.models.project import ProjectStatus

PASSWORD_SPECIAL_CHARS = "@$!%*?&"
PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"
TOTP_CODE_LENGTH = 6


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---- Auth ----
class EmailRequest(CamelModel):
    email: EmailStr

    @field_validator("email", mode="wrap")
    @classmethod
    def keep_email_as_given(cls, value, handler):
        # EmailStr lowercases the domain; emails are matched exactly as sent
        handler(value)
        return value


class RegisterRequest(EmailRequest):
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if not re.search(r"[a-z]", value):
            raise ValueError("Password must contain a lowercase letter")
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain an uppercase letter")
        if not re.search(r"\d", value):
            raise ValueError("Password must contain a number")
        if not any(ch in PASSWORD_SPECIAL_CHARS for ch in value):
            raise ValueError(
                f"Password must contain a special character ({PASSWORD_SPECIAL_CHARS})"
            )
        return value


class LoginRequest(EmailRequest):
    password: str = Field(..., min_length=8)
    totp_code: Optional[str] = Field(
        None, min_length=TOTP_CODE_LENGTH, max_length=TOTP_CODE_LENGTH
    )


class EnableTwoFactorRequest(CamelModel):
    secret: str = Field(..., min_length=1)
    token: str = Field(..., min_length=TOTP_CODE_LENGTH, max_length=TOTP_CODE_LENGTH)


# ---- User ----
class UserPublic(CamelModel):
    """Public projection of a user: never carries the hash or the 2FA secret."""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True
    two_factor_enabled: bool = False
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class RegisterResponse(CamelModel):
    message: str
    user: UserPublic


class LoginResponse(CamelModel):
    message: str
    user: UserPublic
    token: str


class TwoFactorChallengeResponse(CamelModel):
    requires_two_factor: bool = True
    message: str


class ProfileResponse(CamelModel):
    user: UserPublic


class TwoFactorSecretResponse(CamelModel):
    secret: str
    qr_code: str


class SuccessResponse(CamelModel):
    success: bool = True


class MessageResponse(CamelModel):
    message: str


# ---- Project ----
class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class ProjectUpdate(CamelModel):
    """Partial update: omitted fields are untouched, but name and status may not be null."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    status: Optional[ProjectStatus] = None

    @field_validator("name", "status")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field may not be null")
        return value


class ProjectDetailsUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    birthday: Optional[datetime] = None
    street: Optional[str] = Field(None, min_length=1, max_length=100)
    house_number: Optional[str] = Field(None, min_length=1, max_length=20)
    zip_code: Optional[str] = Field(None, min_length=1, max_length=20)
    city: Optional[str] = Field(None, min_length=1, max_length=50)
    country: Optional[str] = Field(None, min_length=1, max_length=50)


class ProjectDetailsOut(CamelModel):
    id: int
    project_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthday: Optional[datetime] = None
    street: Optional[str] = None
    house_number: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    user_id: int
    details: Optional[ProjectDetailsOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectListResponse(CamelModel):
    projects: List[ProjectOut]


class ProjectResponse(CamelModel):
    project: ProjectOut


class ProjectMutationResponse(CamelModel):
    message: str
    project: ProjectOut


class ProjectDetailsResponse(CamelModel):
    message: str
    details: ProjectDetailsOut


# ---- Files ----
class AvatarUploadResponse(CamelModel):
    message: str
    avatar_url: str


class DocumentUploadResponse(CamelModel):
    message: str
    filename: str
    document_url: str
