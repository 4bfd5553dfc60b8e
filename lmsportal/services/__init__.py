"""
Services module containing the portal's domain operations.
"""

from .base import OperationResult
from .concurrency_manager import ConcurrencyManager, LockInfo
from .account_service import AccountService
from .course_service import CourseService, CourseView, CourseOverview
from .assignment_service import AssignmentService, AssignmentView, SubmissionView

__all__ = [
    "OperationResult",
    "ConcurrencyManager",
    "LockInfo",
    "AccountService",
    "CourseService",
    "CourseView",
    "CourseOverview",
    "AssignmentService",
    "AssignmentView",
    "SubmissionView",
]
