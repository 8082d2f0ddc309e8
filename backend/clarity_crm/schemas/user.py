"""User Schemas - account creation and profile updates.

Invariants:
    - name 2-100 chars, password 6-72 chars (bcrypt input limit), email normalized to lower case
    - avatar, when given, is an http(s) URL
    - password_hash never appears in a response
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

from clarity_crm.core.domain_types import UserRole
from clarity_crm.schemas.capacity import CapacitySettingsInput, CapacitySettingsResponse
from clarity_crm.schemas.common import ORMModel, PartialUpdate, TeamSummary, blank_to_none


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=2, max_length=100)
    password: str = Field(min_length=6, max_length=72)
    role: UserRole = UserRole.SALES_AGENT
    team_id: UUID | None = None
    avatar: HttpUrl | None = None
    capacity: CapacitySettingsInput | None = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("avatar", mode="before")
    @classmethod
    def blank_avatar(cls, v):
        return blank_to_none(v)


class UserUpdate(PartialUpdate):
    NON_NULLABLE = ("email", "name", "role", "is_active", "password")

    email: EmailStr | None = None
    name: str | None = Field(None, min_length=2, max_length=100)
    password: str | None = Field(None, min_length=6, max_length=72)
    role: UserRole | None = None
    team_id: UUID | None = None
    avatar: HttpUrl | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v


# Fields a non-lead may change on their own profile
SELF_EDITABLE_FIELDS = frozenset({"name", "email", "avatar", "password"})


class UserResponse(ORMModel):
    id: UUID
    email: str
    name: str
    role: UserRole
    team_id: UUID | None = None
    avatar: str | None = None
    is_active: bool
    created_at: datetime
    team: TeamSummary | None = None


class UserDetailResponse(UserResponse):
    capacity: CapacitySettingsResponse | None = None


class WorkCounts(BaseModel):
    tasks_assigned: int = 0
    activities: int = 0
    call_notes: int = 0


class UserListItem(UserResponse):
    counts: WorkCounts
