from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
import bleach


def _strip_html(v: Optional[str]) -> Optional[str]:
    if v:
        # tags=[] with strip=True drops every tag and keeps the inner text
        return bleach.clean(v, tags=[], attributes={}, strip=True)
    return v


def _naive(v: Optional[datetime]) -> Optional[datetime]:
    # Keep the submitted wall-clock time; the offset is dropped before storage
    if v is not None and v.tzinfo is not None:
        return v.replace(tzinfo=None)
    return v


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while the Python side stays snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Users ---
class UserSummary(CamelModel):
    id: int
    email: str
    name: str
    picture: Optional[str] = None


class UserBrief(UserSummary):
    role: str


class UserOut(UserBrief):
    google_id: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    picture: Optional[str] = None

    @field_validator('name')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v)


class GoogleSignIn(CamelModel):
    token: Optional[str] = None


class LoginHistoryOut(CamelModel):
    id: int
    user_id: int
    ip_address: str
    user_agent: str
    login_at: datetime


class StatusToggle(CamelModel):
    is_active: Optional[bool] = None


# --- Labels ---
class LabelOut(CamelModel):
    id: int
    name: str
    color: str
    type: str
    icon: str
    description: Optional[str] = None
    is_default: bool


class LabelCreate(CamelModel):
    name: Optional[str] = None
    color: Optional[str] = None
    type: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    is_default: Optional[bool] = None

    @field_validator('name', 'description')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v)


class LabelUpdate(LabelCreate):
    pass


# --- Subtasks ---
class SubtaskIn(CamelModel):
    id: Optional[int] = None
    title: str
    completed: bool = False
    order: Optional[int] = None

    @field_validator('title')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v)


class SubtaskOut(CamelModel):
    id: int
    title: str
    completed: bool
    order: int


# --- Personal Tasks ---
class TaskFields(CamelModel):
    title: Optional[str] = None
    short_description: Optional[str] = None
    detailed_description: Optional[str] = None
    labels: Optional[List[int]] = None
    attachments: Optional[List[str]] = None
    subtasks: Optional[List[SubtaskIn]] = None
    email_reminder: Optional[datetime] = None

    @field_validator('title', 'short_description', 'detailed_description')
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return _strip_html(v)

    @field_validator('email_reminder')
    @classmethod
    def drop_offset(cls, v):
        return _naive(v)


class TaskCreate(TaskFields):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_time_offset(cls, v):
        return _naive(v)


class TaskUpdate(TaskCreate):
    time_slot: Optional[str] = None


class TimeSlotUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    time_slot: Optional[str] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_time_offset(cls, v):
        return _naive(v)


class TaskOut(CamelModel):
    id: int
    user_id: int
    title: str
    short_description: Optional[str] = None
    detailed_description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    time_slot: str
    labels: List[LabelOut] = []
    attachments: List[str] = []
    subtasks: List[SubtaskOut] = []
    email_reminder: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# --- Projects ---
class ProjectCreate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator('name', 'description')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v)


class ProjectUpdate(ProjectCreate):
    pass


class MemberAdd(CamelModel):
    user_id: Optional[int] = None
    role: Optional[str] = None


class MemberInvite(CamelModel):
    email: Optional[str] = None
    role: Optional[str] = None


class RoleUpdate(CamelModel):
    role: Optional[str] = None


class MemberOut(CamelModel):
    user_id: int
    user: UserSummary
    role: str
    joined_at: datetime


class ProjectOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    owner_id: int
    owner: UserSummary
    members: List[MemberOut] = []
    columns: List[int] = []
    created_at: datetime
    updated_at: datetime

    @field_validator('columns', mode='before')
    @classmethod
    def column_ids(cls, v):
        return [c if isinstance(c, int) else c.id for c in v or []]


class ColumnCreate(CamelModel):
    name: Optional[str] = None

    @field_validator('name')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v)


class ColumnUpdate(ColumnCreate):
    order: Optional[int] = None


class CommentCreate(CamelModel):
    content: Optional[str] = None

    @field_validator('content')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v).strip() if v else v


class CommentOut(CamelModel):
    id: int
    user_id: int
    user: UserSummary
    content: str
    created_at: datetime


class ProjectTaskCreate(TaskFields):
    pass


class ProjectTaskUpdate(TaskFields):
    pass


class TaskMove(CamelModel):
    column_id: Optional[int] = None
    new_order: Optional[int] = None


class ProjectTaskOut(CamelModel):
    id: int
    project_id: int
    column_id: int
    title: str
    short_description: Optional[str] = None
    detailed_description: Optional[str] = None
    labels: List[LabelOut] = []
    attachments: List[str] = []
    subtasks: List[SubtaskOut] = []
    comments: List[CommentOut] = []
    email_reminder: Optional[datetime] = None
    order: int
    created_at: datetime
    updated_at: datetime


class ColumnOut(CamelModel):
    id: int
    project_id: int
    name: str
    order: int
    tasks: List[ProjectTaskOut] = []
    created_at: datetime
    updated_at: datetime


class AttachmentDelete(CamelModel):
    attachment_url: Optional[str] = None


# --- Admin ---
class SystemConfigOut(CamelModel):
    id: int
    app_name: str
    theme: str
    primary_color: str
    updated_by: Optional[int] = None
    updated_at: datetime


class SystemConfigUpdate(CamelModel):
    app_name: Optional[str] = None
    theme: Optional[str] = None
    primary_color: Optional[str] = None

    @field_validator('app_name')
    @classmethod
    def sanitize_input(cls, v):
        return _strip_html(v)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
