"""
Enumerations and constants for the LMS portal.
"""

from enum import Enum


class Role(Enum):
    """Roles a user can log in with."""
    STUDENT = "student"
    INSTRUCTOR = "instructor"


class SessionState(Enum):
    """Login state of the portal session."""
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class OperationStatus(Enum):
    """Outcome of a domain operation."""
    OK = "ok"
    CREATED = "created"
    UNCHANGED = "unchanged"
    ALREADY_ENROLLED = "already_enrolled"
    ALREADY_SUBMITTED = "already_submitted"
    NOT_ENROLLED = "not_enrolled"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"


class NotificationLevel(Enum):
    """How the presentation layer should style an outcome message."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


STORAGE_KEY = "lms_demo_data_v1"
USER_KEY = "lms_current_user"

MIN_NAME_LENGTH = 2
MIN_TITLE_LENGTH = 3
MIN_SUBMISSION_LENGTH = 5
