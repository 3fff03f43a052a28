"""Exception hierarchy shared by the lifecycle and the report stores."""

from __future__ import annotations


class LifecycleError(ValueError):
    """Base class for rejected report state changes."""


class InvalidStatusError(LifecycleError):
    pass


class TransitionNotAllowedError(LifecycleError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Status transition not allowed: {current} -> {target}")
        self.current = current
        self.target = target


class InvalidRatingError(LifecycleError):
    pass


class StoreError(RuntimeError):
    """Failure reported by (or while talking to) a report store.

    The core never retries these; retry policy belongs to whoever owns the
    store client.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnauthenticatedError(StoreError):
    pass


class PermissionDeniedError(StoreError):
    pass


class ReportNotFoundError(StoreError):
    pass


class ConflictError(StoreError):
    pass


class InvalidRequestError(StoreError):
    pass


class TransientStoreError(StoreError):
    pass
