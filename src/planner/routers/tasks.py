from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_ledger, get_task_store
from ..errors import PremiumRequired
from ..models import FREE_REMINDERS, Reminder
from ..progression import TASK_COMPLETION_XP, ProgressionLedger
from ..schemas import TaskCount, TaskCreate, TaskOut, TaskUpdate, ToggleResult
from ..task_store import FREE_ACTIVE_TASK_LIMIT, TaskStore

router = APIRouter(
    prefix="/api/v1/users/{uid}/tasks",
    tags=["tasks"],
)

_NOT_FOUND = "Task not found"


def _check_reminder(reminder: Reminder, is_premium: bool) -> None:
    if not is_premium and reminder not in FREE_REMINDERS:
        raise PremiumRequired("Smart reminders (2h, 1d, custom) are available on the premium plan")


def gate_create(payload: TaskCreate, is_premium: bool) -> TaskCreate:
    """Apply plan rules to a new task: free users get no color and basic reminders only."""
    _check_reminder(payload.reminder, is_premium)
    if not is_premium and payload.color is not None:
        return payload.model_copy(update={"color": None})
    return payload


def gate_update(payload: TaskUpdate, is_premium: bool) -> TaskUpdate:
    """Same plan rules as gate_create, for the fields present in a partial update."""
    if payload.reminder is not None:
        _check_reminder(payload.reminder, is_premium)
    if not is_premium and "color" in payload.model_fields_set:
        return TaskUpdate(**payload.model_dump(exclude_unset=True, exclude={"color"}))
    return payload


def _get_or_404(store: TaskStore, uid: str, task_id: str, is_premium: bool) -> dict:
    task = store.get(uid, task_id, is_premium)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return task  # type: ignore[return-value]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a homework task. Free plans are limited to 10 active tasks.",
    responses={
        201: {"description": "Task created"},
        403: {"description": "Active-task quota reached or premium option requested"},
        503: {"description": "Remote store failure"},
    },
)
def create_task(
    uid: str,
    payload: TaskCreate,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> TaskOut:
    is_premium = ledger.is_premium(uid)
    payload = gate_create(payload, is_premium)
    task_id = store.create(uid, payload, is_premium)
    return TaskOut(**_get_or_404(store, uid, task_id, is_premium))


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="List the user's tasks sorted by due date (ascending).",
)
def list_tasks(
    uid: str,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> List[TaskOut]:
    is_premium = ledger.is_premium(uid)
    return [TaskOut(**t) for t in store.list(uid, is_premium)]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/count",
    response_model=TaskCount,
    summary="Count Active Tasks",
    description="Number of incomplete tasks and the plan's active-task limit (null when unlimited).",
)
def count_tasks(
    uid: str,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> TaskCount:
    is_premium = ledger.is_premium(uid)
    return TaskCount(
        active=store.count(uid, is_premium),
        limit=None if is_premium else FREE_ACTIVE_TASK_LIMIT,
    )


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    responses={404: {"description": "Task not found"}},
)
def get_task(
    uid: str,
    task_id: str,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> TaskOut:
    return TaskOut(**_get_or_404(store, uid, task_id, ledger.is_premium(uid)))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Partially update a task. Unknown or store-owned fields are rejected.",
    responses={404: {"description": "Task not found"}},
)
def patch_task(
    uid: str,
    task_id: str,
    payload: TaskUpdate,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> TaskOut:
    is_premium = ledger.is_premium(uid)
    _get_or_404(store, uid, task_id, is_premium)
    store.update(task_id, gate_update(payload, is_premium), is_premium)
    return TaskOut(**_get_or_404(store, uid, task_id, is_premium))


# PUBLIC_INTERFACE
@router.post(
    "/{task_id}/toggle",
    response_model=ToggleResult,
    summary="Toggle Completion",
    description=(
        "Flip a task between active and completed. Completing a task awards "
        f"{TASK_COMPLETION_XP} XP and returns the level/streak outcome."
    ),
    responses={404: {"description": "Task not found"}},
)
def toggle_task(
    uid: str,
    task_id: str,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> ToggleResult:
    is_premium = ledger.is_premium(uid)
    task = _get_or_404(store, uid, task_id, is_premium)
    completing = not task["is_completed"]
    store.update(task_id, TaskUpdate(is_completed=completing), is_premium)

    award = ledger.award_xp(uid, TASK_COMPLETION_XP) if completing else None
    updated = store.get(uid, task_id, is_premium) or {**task, "is_completed": completing}
    return ToggleResult(task=TaskOut(**updated), award=award)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    responses={
        204: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    uid: str,
    task_id: str,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> None:
    is_premium = ledger.is_premium(uid)
    _get_or_404(store, uid, task_id, is_premium)
    store.delete(task_id, is_premium)
    return None
