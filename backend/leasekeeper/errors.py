# backend/leasekeeper/errors.py
from __future__ import annotations

from typing import Optional


class LifecycleError(Exception):
    """Base for every error the lifecycle core raises on purpose."""

    status_code = 500

    def __init__(self, message: str, *, entity_type: Optional[str] = None, entity_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(LifecycleError):
    """Caller-supplied data failed a precondition."""

    status_code = 400


class NotFoundError(LifecycleError):
    status_code = 404


class ConflictError(LifecycleError):
    """A guarded write found the row in a different state than expected."""

    status_code = 409


class InvalidTransitionError(LifecycleError):
    status_code = 409

    def __init__(self, entity_type: str, entity_id: int, current: str, requested: str):
        super().__init__(
            f"{entity_type} {entity_id}: transition {current!r} -> {requested!r} is not allowed",
            entity_type=entity_type,
            entity_id=entity_id,
        )
        self.current = current
        self.requested = requested


class StoreError(LifecycleError):
    """Persistence failed. The session has already been rolled back."""


class FileSystemError(LifecycleError):
    """Storing or removing an uploaded document failed."""
