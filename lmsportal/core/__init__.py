"""
Core module containing the portal's records, enums, errors and text rules.
"""

from .entities import Assignment, Course, State, Submission, User, generate_id, utc_timestamp
from .enums import (
    NotificationLevel, OperationStatus, Role, SessionState,
    STORAGE_KEY, USER_KEY,
)
from .exceptions import (
    LMSException, ValidationError, TooShortError, AuthorizationError,
    ResourceNotFoundError, ConflictError, AlreadyEnrolledError,
    AlreadySubmittedError, NotEnrolledError, StorageError, StorageFullError,
    StorageCorruptError, ConcurrencyError, ConfigurationError,
)
from .text import escape_html, is_valid_date, sanitize_input

__all__ = [
    # Entities
    "User",
    "Course",
    "Assignment",
    "Submission",
    "State",
    "generate_id",
    "utc_timestamp",
    
    # Enums
    "Role",
    "SessionState",
    "OperationStatus",
    "NotificationLevel",
    "STORAGE_KEY",
    "USER_KEY",
    
    # Exceptions
    "LMSException",
    "ValidationError",
    "TooShortError",
    "AuthorizationError",
    "ResourceNotFoundError",
    "ConflictError",
    "AlreadyEnrolledError",
    "AlreadySubmittedError",
    "NotEnrolledError",
    "StorageError",
    "StorageFullError",
    "StorageCorruptError",
    "ConcurrencyError",
    "ConfigurationError",
    
    # Text
    "sanitize_input",
    "escape_html",
    "is_valid_date",
]
