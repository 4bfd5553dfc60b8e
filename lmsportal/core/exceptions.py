"""
Custom exceptions for the LMS portal.
"""

from typing import Optional, Any, Dict


class LMSException(Exception):
    """Base exception for all portal errors."""
    
    error_code = "lms_error"
    
    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = details or {}


class ValidationError(LMSException):
    """Raised when user input fails validation."""
    error_code = "validation_error"


class TooShortError(ValidationError):
    """Raised when a free-text field is shorter than its minimum length."""
    error_code = "too_short"


class AuthorizationError(LMSException):
    """Raised when the caller may not perform an action."""
    error_code = "forbidden"


class ResourceNotFoundError(LMSException):
    """Raised when a referenced entity does not exist."""
    error_code = "not_found"


class ConflictError(LMSException):
    """Raised when an at-most-once action was already performed."""
    error_code = "conflict"


class AlreadyEnrolledError(ConflictError):
    """Raised when a student is already on a course roster."""
    error_code = "already_enrolled"


class AlreadySubmittedError(ConflictError):
    """Raised when a student already submitted to an assignment."""
    error_code = "already_submitted"


class NotEnrolledError(LMSException):
    """Raised when a student acts on a course they are not enrolled in."""
    error_code = "not_enrolled"


class StorageError(LMSException):
    """Raised when serialization or a storage write fails."""
    error_code = "storage_error"


class StorageFullError(StorageError):
    """Raised when the storage medium rejects a write for lack of space."""
    error_code = "storage_full"


class StorageCorruptError(StorageError):
    """Raised when persisted data cannot be decoded."""
    error_code = "storage_corrupt"


class ConcurrencyError(LMSException):
    """Raised when a resource lock cannot be acquired."""
    error_code = "concurrency_error"


class ConfigurationError(LMSException):
    """Raised when configuration is invalid."""
    error_code = "configuration_error"
