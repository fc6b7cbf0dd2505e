# Request/response schemas. Response models read straight from ORM rows
# (from_attributes) and never expose password hashes.

import re
import uuid
from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator

from .config import settings
from .roles import Role

SLUG_RE = re.compile(r"[A-Za-z0-9-]+")


def _as_utc(value: datetime) -> datetime:
    # Naive values are read as UTC (SQLite returns them that way); aware ones are
    # converted, since SQLite stores the wall time and drops the offset
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def _check_slug(value: str) -> str:
    if not SLUG_RE.fullmatch(value):
        raise ValueError("Slug can only contain letters, numbers, and hyphens")
    return value


# --- User / Auth schemas ---


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"email": "a@example.com", "password": "password123", "first_name": "Ada"},
            ]
        },
    )

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    model_config = ConfigDict(extra="ignore")


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    model_config = ConfigDict(extra="ignore")


class UserPublic(BaseModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    is_active: bool
    is_email_verified: bool
    last_login_at: Optional[UtcDatetime]
    created_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)  # ORM -> schema


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
    model_config = ConfigDict(
        json_schema_extra={"examples": [{"user": {"email": "a@example.com"}, "token": "<jwt>"}]}
    )


# --- Organization schemas ---


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_check_slug)]
    description: Optional[str] = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"examples": [{"name": "Acme", "slug": "acme"}]},
    )


class OrganizationOut(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str]
    logo_url: Optional[str]
    website: Optional[str]
    is_active: bool
    created_at: UtcDatetime
    role: Optional[Role] = None  # caller's role, taken from the access decision

    model_config = ConfigDict(from_attributes=True)


class MemberOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    user_email: str
    user_first_name: Optional[str]
    user_last_name: Optional[str]
    role: Role
    joined_at: UtcDatetime


# --- Project schemas ---


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_check_slug)]
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"examples": [{"name": "Website", "slug": "website", "status": "planning"}]},
    )


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"examples": [{"status": "on-hold"}, {"color": "#3366ff"}]},
    )


class ProjectOut(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    slug: str
    description: Optional[str]
    status: str
    color: Optional[str]
    created_by: uuid.UUID
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)


# --- Task schemas ---


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    priority: Optional[str] = Field(default=None, min_length=1, max_length=50)
    assigned_to: Optional[uuid.UUID] = None
    due_date: Optional[UtcDatetime] = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"title": "Write landing copy"},
                {"title": "Ship v1", "priority": "high", "due_date": "2026-12-31T18:00:00Z"},
            ]
        },
    )


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    priority: Optional[str] = Field(default=None, min_length=1, max_length=50)
    assigned_to: Optional[uuid.UUID] = None
    due_date: Optional[UtcDatetime] = None
    position: Optional[int] = Field(default=None, ge=0)
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"status": "in_progress"},
                {"status": "done"},
                {"position": 3},
            ]
        },
    )


class TaskOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    title: str
    description: Optional[str]
    status: str
    priority: str
    assigned_to: Optional[uuid.UUID]
    created_by: uuid.UUID
    due_date: Optional[UtcDatetime]
    completed_at: Optional[UtcDatetime]
    position: int
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)


# --- Comment schemas ---


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    model_config = ConfigDict(extra="ignore")


class CommentOut(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)


# --- Mapping helpers ---


def organization_out(org, role: Optional[Role]) -> OrganizationOut:
    return OrganizationOut.model_validate(org).model_copy(update={"role": role})


def member_out(member, user) -> MemberOut:
    return MemberOut(
        id=member.id,
        user_id=member.user_id,
        user_email=user.email,
        user_first_name=user.first_name,
        user_last_name=user.last_name,
        role=member.role,
        joined_at=member.joined_at,
    )
