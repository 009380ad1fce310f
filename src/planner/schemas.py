from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Plan, Priority, Reminder

_HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"
_HH_MM = r"^(?:[01]\d|2[0-3]):[0-5]\d$"


def _clean_text(value: Optional[str], name: str) -> Optional[str]:
    """Strip whitespace and enforce 1..200 length on a required text field."""
    if value is None:
        return None
    s = value.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError(f"{name} length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Fields a caller may supply when creating a homework task.

    id, user_id, created_at and is_completed are owned by the store and are
    rejected here.
    """

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "subject": "Math",
                "title": "Exercises 4.1 to 4.7",
                "due_date": "2025-03-05",
                "priority": "high",
                "notes": "Show all work",
                "color": "#FF6B4A",
                "reminder": "sameday",
            }
        },
    )

    subject: str = Field(..., description="Subject or course name", min_length=1, max_length=200)
    title: str = Field(..., description="Short title of the assignment", min_length=1, max_length=200)
    due_date: date = Field(..., description="Due date (YYYY-MM-DD)")
    priority: Priority = Field(default=Priority.MEDIUM, description="low, medium or high")
    notes: Optional[str] = Field(default=None, description="Optional notes")
    color: Optional[str] = Field(default=None, pattern=_HEX_COLOR, description="Hex color (premium only)")
    reminder: Reminder = Field(default=Reminder.NONE, description="Reminder option")
    reminder_custom_time: Optional[str] = Field(
        default=None, pattern=_HH_MM, description="HH:MM, used only when reminder is 'custom'"
    )

    @field_validator("subject", "title")
    @classmethod
    def validate_text(cls, v: str, info) -> str:
        cleaned = _clean_text(v, info.field_name)
        if cleaned is None:
            raise ValueError(f"{info.field_name} is required")
        return cleaned

    @model_validator(mode="after")
    def drop_unused_custom_time(self) -> "TaskCreate":
        if self.reminder != Reminder.CUSTOM:
            self.reminder_custom_time = None
        return self


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Partial update of a homework task.

    Only fields explicitly provided are merged. Unknown keys, and the
    store-owned fields (id, user_id, created_at), fail validation.
    """

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"is_completed": True}},
    )

    subject: Optional[str] = Field(default=None, min_length=1, max_length=200)
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
    reminder: Optional[Reminder] = None
    reminder_custom_time: Optional[str] = Field(default=None, pattern=_HH_MM)
    is_completed: Optional[bool] = None

    @field_validator("subject", "title")
    @classmethod
    def validate_text(cls, v: Optional[str], info) -> Optional[str]:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return _clean_text(v, info.field_name)

    @field_validator("due_date", "priority", "reminder", "is_completed")
    @classmethod
    def reject_null(cls, v: Any, info) -> Any:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @model_validator(mode="after")
    def clear_unused_custom_time(self) -> "TaskUpdate":
        if self.reminder is not None and self.reminder != Reminder.CUSTOM:
            self.reminder_custom_time = None
            self.model_fields_set.add("reminder_custom_time")
        return self

    def to_fields(self) -> Dict[str, Any]:
        """Return the explicitly set fields in their stored (JSON-friendly) form."""
        out: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if isinstance(value, (Priority, Reminder)):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            out[name] = value
        return out


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """Schema returned by the API for a homework task."""

    id: str
    user_id: str
    subject: str
    title: str
    due_date: date
    priority: Priority
    notes: Optional[str] = None
    color: Optional[str] = None
    reminder: Reminder = Reminder.NONE
    reminder_custom_time: Optional[str] = None
    is_completed: bool
    created_at: datetime


class TaskCount(BaseModel):
    active: int = Field(..., description="Number of incomplete tasks")
    limit: Optional[int] = Field(default=None, description="Active-task limit, null when unlimited")


# PUBLIC_INTERFACE
class ProfileOut(BaseModel):
    """Schema returned by the API for a user profile."""

    uid: str
    email: Optional[str] = None
    display_name: str
    photo_url: str = ""
    plan: Plan
    xp: int
    level: int
    streak: int
    last_active: Optional[datetime] = None
    created_at: datetime


class ProfileUpdate(BaseModel):
    """Display fields a user may change on their profile."""

    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    photo_url: Optional[str] = Field(default=None, max_length=2048)
    email: Optional[str] = Field(default=None, max_length=320)

    @field_validator("display_name", "photo_url")
    @classmethod
    def reject_null(cls, v: Optional[str], info) -> str:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    def to_fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class PlanUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan: Plan


class XPAward(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int = Field(..., ge=1, description="Experience points to award")


# PUBLIC_INTERFACE
class AwardResult(BaseModel):
    """Outcome of one XP award, for level-up and streak feedback."""

    did_level_up: bool
    new_level: int
    streak_extended: bool
    new_streak: int


class ToggleResult(BaseModel):
    task: TaskOut
    award: Optional[AwardResult] = Field(
        default=None, description="Present when the toggle completed the task"
    )


class LeaderboardEntry(BaseModel):
    uid: str
    display_name: str
    photo_url: str = ""
    plan: Plan
    xp: int
    level: int
    streak: int


class Leaderboard(BaseModel):
    items: List[LeaderboardEntry]
    limit: int


# PUBLIC_INTERFACE
class ReportSummary(BaseModel):
    """Progress figures over the tasks visible to a user."""

    total: int
    completed: int
    active: int
    completion_rate: int = Field(..., description="Completed share of all tasks, rounded percent")
    due_today: int
    overdue: int
    due_this_week: int
    completed_this_week: int
