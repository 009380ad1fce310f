from __future__ import annotations

import logging
from datetime import datetime
from threading import RLock
from typing import List, Optional

from .models import Plan, ProfileEntity
from .repositories import (
    ProfileRepository,
    StorageConfig,
    select_profile_repository,
    select_task_repository,
)
from .schemas import AwardResult, ProfileUpdate

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 1000
TASK_COMPLETION_XP = 100
FOCUS_SESSION_XP = 250
DEFAULT_DISPLAY_NAME = "Student"
DEFAULT_LEADERBOARD_SIZE = 50


# PUBLIC_INTERFACE
def level_for_xp(xp: int) -> int:
    """Level derived from total xp: one level per XP_PER_LEVEL, starting at 1."""
    return xp // XP_PER_LEVEL + 1


# PUBLIC_INTERFACE
def next_streak(current: int, last_active: Optional[datetime], now: datetime) -> int:
    """
    Streak after an award at now.

    Calendar days between last_active and now:
    - no previous activity -> 1
    - same day, or negative (clock moved back) -> unchanged
    - next day -> current + 1
    - two or more days -> restarts at 1
    """
    if last_active is None:
        return 1
    days = (now.date() - last_active.date()).days
    if days == 1:
        return current + 1
    if days > 1:
        return 1
    return current


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# PUBLIC_INTERFACE
class ProgressionLedger:
    """
    Owns a user's xp, level and daily streak, plus the plan and display
    fields stored on the same profile.

    award_xp is a read-modify-write on the profile. Calls on one ledger are
    serialised by a lock, which covers concurrent requests inside a single
    process; separate processes writing the same profile are not coordinated.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self._lock = RLock()

    def _repo(self) -> ProfileRepository:
        return select_profile_repository(self._config)

    def _default_profile(
        self, uid: str, email: Optional[str] = None, display_name: Optional[str] = None
    ) -> ProfileEntity:
        return {
            "uid": uid,
            "email": email,
            "display_name": display_name or DEFAULT_DISPLAY_NAME,
            "photo_url": "",
            "plan": Plan.FREE.value,
            "xp": 0,
            "level": 1,
            "streak": 0,
            "last_active": None,
            "created_at": self._config.clock().isoformat(),
        }

    def get_profile(
        self, uid: str, email: Optional[str] = None, display_name: Optional[str] = None
    ) -> ProfileEntity:
        """Return the profile for uid, creating it with defaults on first request."""
        with self._lock:
            repo = self._repo()
            profile = repo.get(uid)
            if profile is None:
                profile = self._default_profile(uid, email, display_name)
                repo.create(profile)
                logger.info("Profile created uid=%s", uid)
            return profile

    def is_premium(self, uid: str) -> bool:
        return self.get_profile(uid)["plan"] == Plan.PREMIUM.value

    def award_xp(self, uid: str, amount: int) -> AwardResult:
        """
        Add amount xp to the user's profile and update level and streak.

        The amount is applied as given; callers validate it.
        """
        with self._lock:
            profile = self.get_profile(uid)
            now = self._config.clock()

            current_xp = int(profile.get("xp") or 0)
            current_streak = int(profile.get("streak") or 0)
            current_level = level_for_xp(current_xp)
            new_streak = next_streak(current_streak, _parse_ts(profile.get("last_active")), now)

            new_xp = current_xp + amount
            new_level = level_for_xp(new_xp)

            self._repo().update(
                uid,
                {
                    "xp": new_xp,
                    "level": new_level,
                    "streak": new_streak,
                    "last_active": now.isoformat(),
                },
            )

        result = AwardResult(
            did_level_up=new_level > current_level,
            new_level=new_level,
            streak_extended=new_streak > current_streak,
            new_streak=new_streak,
        )
        if result.did_level_up:
            logger.info("Level up uid=%s level=%s xp=%s", uid, new_level, new_xp)
        return result

    def update_plan(self, uid: str, plan: Plan) -> ProfileEntity:
        with self._lock:
            self.get_profile(uid)
            self._repo().update(uid, {"plan": Plan(plan).value})
            logger.info("Plan changed uid=%s plan=%s", uid, Plan(plan).value)
            return self.get_profile(uid)

    def update_profile(self, uid: str, fields: ProfileUpdate) -> ProfileEntity:
        with self._lock:
            self.get_profile(uid)
            changes = fields.to_fields()
            if changes:
                self._repo().update(uid, changes)
            return self.get_profile(uid)

    def delete_user_data(self, uid: str) -> None:
        """
        Remove the profile and every task the user owns, local and remote.

        Remote tasks go first: a remote failure leaves local tasks and the
        profile untouched, so the call can simply be retried.
        """
        with self._lock:
            removed = 0
            if self._config.remote_available:
                removed += select_task_repository(self._config, is_premium=True).delete_for_user(uid)
            removed += select_task_repository(self._config, is_premium=False).delete_for_user(uid)
            self._repo().delete(uid)
        logger.info("User data deleted uid=%s tasks=%s", uid, removed)

    def get_leaderboard(self, n: int = DEFAULT_LEADERBOARD_SIZE) -> List[ProfileEntity]:
        """Top n profiles by xp descending; ties keep natural store order."""
        return self._repo().top_by_xp(n)
