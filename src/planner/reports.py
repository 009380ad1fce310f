from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Tuple

from .models import TaskEntity
from .schemas import ReportSummary

OVERDUE = "overdue"
TODAY = "today"
UPCOMING = "upcoming"


def week_bounds(today: date) -> Tuple[date, date]:
    """Sunday..Saturday week containing today."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


# PUBLIC_INTERFACE
def due_status(task: TaskEntity, today: date) -> str:
    """Bucket a task by its due date: overdue, today or upcoming."""
    due = date.fromisoformat(task["due_date"])
    if due < today:
        return OVERDUE
    if due == today:
        return TODAY
    return UPCOMING


# PUBLIC_INTERFACE
def summarize(tasks: Iterable[TaskEntity], today: date) -> ReportSummary:
    """
    Progress figures over a user's visible tasks.

    due_today and overdue count active tasks only. The week runs Sunday to
    Saturday around today.
    """
    items = list(tasks)
    total = len(items)
    completed = sum(1 for t in items if t["is_completed"])
    active = [t for t in items if not t["is_completed"]]

    start, end = week_bounds(today)
    this_week = [t for t in items if start <= date.fromisoformat(t["due_date"]) <= end]

    return ReportSummary(
        total=total,
        completed=completed,
        active=len(active),
        completion_rate=int(completed * 100 / total + 0.5) if total else 0,
        due_today=sum(1 for t in active if due_status(t, today) == TODAY),
        overdue=sum(1 for t in active if due_status(t, today) == OVERDUE),
        due_this_week=len(this_week),
        completed_this_week=sum(1 for t in this_week if t["is_completed"]),
    )
