from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_ledger, get_storage_config, get_task_store
from ..progression import DEFAULT_LEADERBOARD_SIZE, ProgressionLedger
from ..repositories import StorageConfig
from ..reports import summarize
from ..schemas import (
    AwardResult,
    Leaderboard,
    LeaderboardEntry,
    PlanUpdate,
    ProfileOut,
    ProfileUpdate,
    ReportSummary,
    XPAward,
)
from ..task_store import TaskStore

router = APIRouter(
    prefix="/api/v1",
    tags=["users"],
)


# PUBLIC_INTERFACE
@router.get(
    "/users/{uid}/profile",
    response_model=ProfileOut,
    summary="Get Profile",
    description="Return the user's profile, creating a free-plan profile on first access.",
)
def get_profile(
    uid: str,
    email: Optional[str] = Query(None, description="Email recorded when the profile is created"),
    display_name: Optional[str] = Query(None, description="Name recorded when the profile is created"),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> ProfileOut:
    return ProfileOut(**ledger.get_profile(uid, email=email, display_name=display_name))


# PUBLIC_INTERFACE
@router.patch(
    "/users/{uid}/profile",
    response_model=ProfileOut,
    summary="Update Profile",
    description="Update display fields (name, photo, email).",
)
def patch_profile(
    uid: str, payload: ProfileUpdate, ledger: ProgressionLedger = Depends(get_ledger)
) -> ProfileOut:
    return ProfileOut(**ledger.update_profile(uid, payload))


# PUBLIC_INTERFACE
@router.put(
    "/users/{uid}/plan",
    response_model=ProfileOut,
    summary="Change Plan",
    description="Set the user's plan to free or premium.",
)
def put_plan(
    uid: str, payload: PlanUpdate, ledger: ProgressionLedger = Depends(get_ledger)
) -> ProfileOut:
    return ProfileOut(**ledger.update_plan(uid, payload.plan))


# PUBLIC_INTERFACE
@router.post(
    "/users/{uid}/xp",
    response_model=AwardResult,
    summary="Award XP",
    description="Add experience points and report level-up and streak changes.",
)
def award_xp(
    uid: str, payload: XPAward, ledger: ProgressionLedger = Depends(get_ledger)
) -> AwardResult:
    return ledger.award_xp(uid, payload.amount)


# PUBLIC_INTERFACE
@router.delete(
    "/users/{uid}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Account Data",
    description="Delete the user's profile and all of their tasks.",
)
def delete_user(uid: str, ledger: ProgressionLedger = Depends(get_ledger)) -> None:
    ledger.delete_user_data(uid)
    return None


# PUBLIC_INTERFACE
@router.get(
    "/users/{uid}/reports/summary",
    response_model=ReportSummary,
    summary="Progress Summary",
    description="Completion rate and due-date buckets over the user's visible tasks.",
)
def report_summary(
    uid: str,
    store: TaskStore = Depends(get_task_store),
    ledger: ProgressionLedger = Depends(get_ledger),
    config: StorageConfig = Depends(get_storage_config),
) -> ReportSummary:
    tasks = store.list(uid, ledger.is_premium(uid))
    return summarize(tasks, config.clock().date())


# PUBLIC_INTERFACE
@router.get(
    "/leaderboard",
    response_model=Leaderboard,
    summary="Leaderboard",
    description="Top profiles by XP, highest first.",
)
def leaderboard(
    limit: int = Query(DEFAULT_LEADERBOARD_SIZE, ge=1, le=500, description="Number of entries"),
    ledger: ProgressionLedger = Depends(get_ledger),
) -> Leaderboard:
    items = [LeaderboardEntry(**p) for p in ledger.get_leaderboard(limit)]  # type: ignore[arg-type]
    return Leaderboard(items=items, limit=limit)
