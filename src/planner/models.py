from __future__ import annotations

from enum import Enum
from typing import Optional, TypedDict


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Reminder(str, Enum):
    NONE = ""
    SAME_DAY = "sameday"
    TWO_HOURS = "2h"
    ONE_DAY = "1d"
    CUSTOM = "custom"


# Reminder options open to every plan; the rest are premium-gated by the caller.
FREE_REMINDERS = frozenset({Reminder.NONE, Reminder.SAME_DAY})


class Plan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A homework task as stored by both the local and the remote store.

    Fields:
    - id: Opaque unique identifier, generated on create
    - user_id: Owner; never changes after creation
    - subject / title: Required, non-empty
    - due_date: ISO date string (YYYY-MM-DD); drives sort order and status buckets
    - priority: low | medium | high
    - notes: Optional free text
    - color: Hex color, only kept for premium owners
    - reminder: '' | sameday | 2h | 1d | custom
    - reminder_custom_time: HH:MM, only meaningful when reminder is custom
    - is_completed: Completion flag, always False on create
    - created_at: ISO timestamp set at creation, immutable
    """

    id: str
    user_id: str
    subject: str
    title: str
    due_date: str
    priority: str
    notes: Optional[str]
    color: Optional[str]
    reminder: str
    reminder_custom_time: Optional[str]
    is_completed: bool
    created_at: str


# PUBLIC_INTERFACE
class ProfileEntity(TypedDict):
    """
    A user's profile: plan tier plus gamification state.

    level is always derived from xp on write (see progression.level_for_xp).
    last_active is the ISO timestamp of the last XP award, or None.
    """

    uid: str
    email: Optional[str]
    display_name: str
    photo_url: str
    plan: str
    xp: int
    level: int
    streak: int
    last_active: Optional[str]
    created_at: str
