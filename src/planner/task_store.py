from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from .errors import QuotaExceeded
from .models import TaskEntity
from .repositories import StorageConfig, TaskRepository, select_task_repository
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

FREE_ACTIVE_TASK_LIMIT = 10
FREE_HISTORY_DAYS = 30


# PUBLIC_INTERFACE
class TaskStore:
    """
    Create/read/update/delete homework tasks for a user.

    Every call picks its repository from (is_premium, remote availability):
    the remote store only for premium users with the remote reachable, the
    local fallback otherwise. A task stays in the store it was created in;
    nothing is synced or reconciled between the two.

    Free tier rules:
    - at most FREE_ACTIVE_TASK_LIMIT incomplete tasks (enforced on create)
    - completed tasks older than FREE_HISTORY_DAYS are hidden when reading
      from local storage
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config

    def _repo(self, is_premium: bool) -> TaskRepository:
        return select_task_repository(self._config, is_premium)

    def create(self, user_id: str, fields: TaskCreate, is_premium: bool) -> str:
        """
        Create a task and return its id.

        Raises QuotaExceeded, without writing, when a free user already has
        FREE_ACTIVE_TASK_LIMIT active tasks.
        """
        if not is_premium:
            active = self.count(user_id, is_premium=False)
            if active >= FREE_ACTIVE_TASK_LIMIT:
                logger.info("Task quota reached user=%s active=%s", user_id, active)
                raise QuotaExceeded(FREE_ACTIVE_TASK_LIMIT)

        entity: TaskEntity = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "subject": fields.subject,
            "title": fields.title,
            "due_date": fields.due_date.isoformat(),
            "priority": fields.priority.value,
            "notes": fields.notes,
            "color": fields.color,
            "reminder": fields.reminder.value,
            "reminder_custom_time": fields.reminder_custom_time,
            "is_completed": False,
            "created_at": self._config.clock().isoformat(),
        }
        task_id = self._repo(is_premium).insert(entity)
        logger.debug("Task created id=%s user=%s premium=%s", task_id, user_id, is_premium)
        return task_id

    def list(self, user_id: str, is_premium: bool) -> List[TaskEntity]:
        """
        Return the user's tasks sorted by due_date ascending.

        Ties keep storage order. Local reads drop completed tasks created
        more than FREE_HISTORY_DAYS ago; active tasks are never dropped.
        """
        if not user_id:
            return []
        repo = self._repo(is_premium)
        items = repo.list_for_user(user_id)

        if repo.applies_retention:
            cutoff = self._config.clock() - timedelta(days=FREE_HISTORY_DAYS)
            items = [
                t for t in items
                if not t["is_completed"] or datetime.fromisoformat(t["created_at"]) >= cutoff
            ]

        return sorted(items, key=lambda t: t["due_date"])

    def get(self, user_id: str, task_id: str, is_premium: bool) -> Optional[TaskEntity]:
        """Return one of the user's visible tasks, or None."""
        for task in self.list(user_id, is_premium):
            if task["id"] == task_id:
                return task
        return None

    def update(self, task_id: str, fields: TaskUpdate, is_premium: bool) -> None:
        """Merge the explicitly set fields into the task; no-op if it does not exist."""
        changes = fields.to_fields()
        if not changes:
            return
        if not self._repo(is_premium).update(task_id, changes):
            logger.debug("Task update skipped, not found id=%s", task_id)

    def delete(self, task_id: str, is_premium: bool) -> None:
        if not self._repo(is_premium).delete(task_id):
            logger.debug("Task delete skipped, not found id=%s", task_id)

    def count(self, user_id: str, is_premium: bool) -> int:
        """Number of active (incomplete) tasks visible to the user."""
        return sum(1 for t in self.list(user_id, is_premium) if not t["is_completed"])

