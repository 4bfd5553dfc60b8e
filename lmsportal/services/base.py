"""
Shared result type and plumbing for the domain services.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from ..core.entities import User
from ..core.enums import NotificationLevel, OperationStatus, Role
from ..core.exceptions import (
    AlreadyEnrolledError, AlreadySubmittedError, AuthorizationError,
    ConcurrencyError, ConflictError, LMSException, NotEnrolledError,
    ResourceNotFoundError, StorageError, StorageFullError, ValidationError,
)
from ..persistence.session_store import SessionManager
from ..persistence.state_store import StateStore
from .concurrency_manager import ConcurrencyManager

logger = logging.getLogger("lmsportal.services")

# Checked in order, so subclasses come before their parents.
_ERROR_OUTCOMES = [
    (AlreadyEnrolledError, OperationStatus.ALREADY_ENROLLED, NotificationLevel.INFO),
    (AlreadySubmittedError, OperationStatus.ALREADY_SUBMITTED, NotificationLevel.INFO),
    (ConflictError, OperationStatus.CONFLICT, NotificationLevel.INFO),
    (ConcurrencyError, OperationStatus.CONFLICT, NotificationLevel.WARNING),
    (NotEnrolledError, OperationStatus.NOT_ENROLLED, NotificationLevel.ERROR),
    (ResourceNotFoundError, OperationStatus.NOT_FOUND, NotificationLevel.ERROR),
    (AuthorizationError, OperationStatus.FORBIDDEN, NotificationLevel.ERROR),
    (ValidationError, OperationStatus.INVALID, NotificationLevel.ERROR),
]


@dataclass
class OperationResult:
    """Outcome of a domain operation, handed back to the presentation layer."""
    success: bool
    status: OperationStatus
    message: str
    level: NotificationLevel = NotificationLevel.SUCCESS
    data: Any = None
    error: Optional[LMSException] = None
    storage_error: Optional[StorageError] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str, data: Any = None,
           status: OperationStatus = OperationStatus.OK,
           storage_error: Optional[StorageError] = None) -> "OperationResult":
        result = cls(success=True, status=status, message=message, data=data)
        if storage_error is not None:
            result.storage_error = storage_error
            result.level = NotificationLevel.WARNING
            if isinstance(storage_error, StorageFullError):
                result.warnings.append("Storage is full. Please clear some data.")
            else:
                result.warnings.append(f"Changes could not be saved: {storage_error.message}")
        return result

    @classmethod
    def failure(cls, error: LMSException) -> "OperationResult":
        for error_type, status, level in _ERROR_OUTCOMES:
            if isinstance(error, error_type):
                return cls(success=False, status=status, message=error.message, level=level, error=error)
        return cls(
            success=False,
            status=OperationStatus.CONFLICT,
            message=error.message,
            level=NotificationLevel.ERROR,
            error=error,
        )

    @property
    def is_informational(self) -> bool:
        """True for outcomes that report rather than block, like a repeat enroll."""
        return self.level is NotificationLevel.INFO


class BaseService:
    """Gives services the store, session and lock manager they share."""

    def __init__(self, store: StateStore, session: SessionManager,
                 concurrency_manager: ConcurrencyManager):
        self._store = store
        self._session = session
        self._concurrency_manager = concurrency_manager

    def _execute(self, action: str, operation: Callable[[], OperationResult]) -> OperationResult:
        """Run an operation, turning expected failures into result values."""
        try:
            result = operation()
        except LMSException as e:
            logger.info("%s rejected: %s (%s)", action, e.message, e.error_code)
            return OperationResult.failure(e)
        if result.storage_error is not None:
            logger.warning("%s succeeded in memory but was not persisted", action)
        else:
            logger.info("%s: %s", action, result.message)
        return result

    def _require_user(self, user_id: Optional[str], role: Optional[Role] = None) -> User:
        """Resolve a user id, optionally insisting on a role."""
        user = self._store.find_user(user_id)
        if user is None:
            raise AuthorizationError("Please log in first", details={"user_id": user_id})
        if role is not None and user.role is not role:
            raise AuthorizationError(
                f"Only {role.value}s can do that",
                details={"user_id": user_id, "role": user.role.value},
            )
        return user
