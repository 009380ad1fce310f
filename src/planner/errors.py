from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors surfaced by the planner core to its callers."""

    code = "PlannerError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# PUBLIC_INTERFACE
class QuotaExceeded(PlannerError):
    """A free-tier user already has the maximum number of active tasks."""

    code = "QuotaExceeded"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Free plan is limited to {limit} active tasks")
        self.limit = limit


# PUBLIC_INTERFACE
class RemoteStoreFailure(PlannerError):
    """
    Wraps any error raised by the remote store client.

    The original exception is kept as ``__cause__`` (raise ... from exc).
    """

    code = "RemoteStoreFailure"

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"Remote store {operation} failed: {cause}")
        self.operation = operation


# PUBLIC_INTERFACE
class PremiumRequired(PlannerError):
    """A free-tier user asked for a premium-only option."""

    code = "PremiumRequired"
