from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import PlannerError, PremiumRequired, QuotaExceeded, RemoteStoreFailure
from .logging_setup import setup_logging
from .progression import ProgressionLedger
from .repositories import StorageConfig, build_storage_config
from .routers import tasks as tasks_router
from .routers import users as users_router
from .settings import Settings, get_settings
from .task_store import TaskStore

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and storage status."},
    {"name": "tasks", "description": "Homework tasks with plan-based quota and retention."},
    {"name": "users", "description": "Profiles, plans, XP, streaks, reports and the leaderboard."},
]

_ERROR_STATUS = {
    QuotaExceeded: 403,
    PremiumRequired: 403,
    RemoteStoreFailure: 503,
}


def _error_status(exc: PlannerError) -> int:
    for kind, code in _ERROR_STATUS.items():
        if isinstance(exc, kind):
            return code
    return 400


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, storage: Optional[StorageConfig] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Overrides environment settings (tests).
        storage: Pre-built storage configuration; built from settings when omitted.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    storage = storage or build_storage_config(settings)

    app = FastAPI(
        title="Homework Planner Backend",
        description="Homework tasks with free/premium tiers, XP, levels, streaks and a leaderboard.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.storage = storage
    app.state.task_store = TaskStore(storage)
    app.state.ledger = ProgressionLedger(storage)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Response format:
            {
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": [... pydantic/fastapi error details ...]
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": _jsonable_errors(exc),
            },
        )

    @app.exception_handler(PlannerError)
    async def planner_exception_handler(request: Request, exc: PlannerError) -> JSONResponse:
        """Quota and premium errors become 403, remote failures 503."""
        return JSONResponse(
            status_code=_error_status(exc),
            content={"error": exc.code, "message": exc.message, "detail": None},
        )

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        return {"message": "Healthy", "remote_available": storage.remote_available}

    app.include_router(tasks_router.router)
    app.include_router(users_router.router)
    logger.info("App ready remote_available=%s", storage.remote_available)
    return app


def _jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with any exception objects in their context turned into strings."""
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})


app = create_app()
