"""
REST API for the LMS portal using FastAPI.

This is the presentation layer: it resolves the logged-in user, forwards each
request to a domain operation and escapes every text field on the way out.
"""

import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from ..core.entities import Assignment, Course, Submission, User
from ..core.enums import OperationStatus
from ..core.text import escape_html
from ..persistence import SessionManager
from ..services import (
    AccountService, AssignmentService, AssignmentView, CourseService,
    CourseView, OperationResult, SubmissionView,
)

logger = logging.getLogger("lmsportal.api")

_HTTP_STATUS = {
    OperationStatus.INVALID: status.HTTP_400_BAD_REQUEST,
    OperationStatus.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    OperationStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OperationStatus.NOT_ENROLLED: status.HTTP_403_FORBIDDEN,
    OperationStatus.ALREADY_SUBMITTED: status.HTTP_409_CONFLICT,
    OperationStatus.CONFLICT: status.HTTP_409_CONFLICT,
}


# Pydantic models for API
class LoginRequest(BaseModel):
    name: str = Field("", max_length=100)
    role: str = ""


class UserResponse(BaseModel):
    id: str
    name: str
    role: str


class CourseCreate(BaseModel):
    title: str = Field("", max_length=100)
    description: str = Field("", max_length=500)


class CourseResponse(BaseModel):
    id: str
    title: str
    description: str
    instructor_id: Optional[str] = None
    instructor_name: str
    student_count: int
    enrolled: bool = False
    can_enroll: bool = False
    can_manage: bool = False


class RosterResponse(BaseModel):
    course_id: str
    title: str
    student_count: int
    students: List[str] = []


class AssignmentCreate(BaseModel):
    course_id: str = Field(..., min_length=1)
    title: str = Field("", max_length=100)
    description: str = Field("", max_length=1000)
    due_date: Optional[str] = None


class AssignmentResponse(BaseModel):
    id: str
    course_id: str
    course_title: str
    title: str
    description: str
    due_date: Optional[str] = None
    submitted: bool = False
    can_submit: bool = False
    can_grade: bool = False


class SubmissionCreate(BaseModel):
    text: str = Field("", max_length=5000)


class SubmissionResponse(BaseModel):
    index: int
    student_name: str
    text: str
    grade: Optional[str] = None
    submitted_at: Optional[str] = None


class GradeRequest(BaseModel):
    grade: str = Field("", max_length=50)


class OperationResponse(BaseModel):
    success: bool
    status: str
    message: str
    level: str
    warnings: List[str] = []
    data: Optional[Dict[str, Any]] = None


class LMSRestAPI:
    """REST API implementation for the LMS portal."""

    def __init__(self, session: SessionManager, account_service: AccountService,
                 course_service: CourseService, assignment_service: AssignmentService):
        self._session = session
        self._account_service = account_service
        self._course_service = course_service
        self._assignment_service = assignment_service

        # Create FastAPI app
        self.app = FastAPI(
            title="LMS Portal API",
            description="Courses, enrollment, assignments and grading for a single local user",
            version="1.0.0",
            docs_url="/docs",
            redoc_url="/redoc"
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Setup routes
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/health", response_model=Dict[str, str])
        def health_check():
            """Health check endpoint."""
            health = {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
            warning = self._account_service.storage_warning()
            if warning is not None:
                health["warning"] = escape_html(warning)
            return health

        # Session endpoints
        @self.app.get("/session", response_model=UserResponse)
        def get_session():
            """Get the logged-in user."""
            return self._user_to_response(self._current_user())

        @self.app.post("/session", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
        def login(login_data: LoginRequest):
            """Log in, registering a new user."""
            result = self._account_service.login(login_data.name, login_data.role)
            return self._respond(result, data=lambda user: self._user_to_response(user).model_dump())

        @self.app.delete("/session", response_model=OperationResponse)
        def logout():
            """Log out; repeated calls are harmless."""
            return self._respond(self._account_service.logout())

        # Course endpoints
        @self.app.get("/courses", response_model=List[CourseResponse])
        def list_courses():
            """List all courses for the current user."""
            viewer = self._current_user()
            return [self._course_view_to_response(view) for view in self._course_service.list_courses(viewer)]

        @self.app.post("/courses", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
        def create_course(course_data: CourseCreate):
            """Create a new course owned by the current instructor."""
            user = self._current_user()
            result = self._course_service.create_course(course_data.title, course_data.description, user.id)
            return self._respond(result, data=lambda course: self._course_to_dict(course))

        @self.app.post("/courses/{course_id}/enroll", response_model=OperationResponse)
        def enroll(course_id: str):
            """Enroll the current student in a course."""
            user = self._current_user()
            result = self._course_service.enroll_in_course(course_id, user.id)
            return self._respond(result, data=lambda course: self._course_to_dict(course))

        @self.app.get("/courses/{course_id}/roster", response_model=RosterResponse)
        def get_roster(course_id: str):
            """Roster of a course, for its instructor."""
            user = self._current_user()
            result = self._course_service.manage_course(course_id, user.id)
            self._raise_for_failure(result)
            overview = result.data
            return RosterResponse(
                course_id=overview.course.id,
                title=escape_html(overview.course.title),
                student_count=overview.student_count,
                students=[escape_html(name) for name in overview.student_names],
            )

        # Assignment endpoints
        @self.app.get("/assignments", response_model=List[AssignmentResponse])
        def list_assignments(course_id: Optional[str] = None):
            """List assignments visible to the current user."""
            viewer = self._current_user()
            views = self._assignment_service.visible_assignments(viewer, course_id)
            return [self._assignment_view_to_response(view) for view in views]

        @self.app.post("/assignments", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
        def create_assignment(assignment_data: AssignmentCreate):
            """Create an assignment under one of the instructor's courses."""
            user = self._current_user()
            result = self._assignment_service.create_assignment(
                assignment_data.course_id,
                assignment_data.title,
                assignment_data.description,
                assignment_data.due_date,
                user.id,
            )
            return self._respond(result, data=lambda assignment: self._assignment_to_dict(assignment))

        @self.app.post("/assignments/{assignment_id}/submissions", response_model=OperationResponse,
                       status_code=status.HTTP_201_CREATED)
        def submit(assignment_id: str, submission_data: SubmissionCreate):
            """Submit work for an assignment."""
            user = self._current_user()
            result = self._assignment_service.submit_assignment(assignment_id, user.id, submission_data.text)
            return self._respond(result, data=lambda submission: self._submission_to_dict(submission))

        @self.app.get("/assignments/{assignment_id}/submissions", response_model=List[SubmissionResponse])
        def list_submissions(assignment_id: str):
            """Grading view of an assignment's submissions."""
            user = self._current_user()
            result = self._assignment_service.submissions_for_grading(assignment_id, user.id)
            self._raise_for_failure(result)
            return [self._submission_view_to_response(view) for view in result.data]

        @self.app.put("/assignments/{assignment_id}/submissions/{index}/grade", response_model=OperationResponse)
        def grade(assignment_id: str, index: int, grade_data: GradeRequest):
            """Set the grade of one submission."""
            user = self._current_user()
            result = self._assignment_service.grade_submission(assignment_id, index, grade_data.grade, user.id)
            return self._respond(result, data=lambda submission: self._submission_to_dict(submission))

    def _current_user(self) -> User:
        user = self._session.current_user
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please log in first")
        return user

    def _raise_for_failure(self, result: OperationResult) -> None:
        if result.success or result.status is OperationStatus.ALREADY_ENROLLED:
            return
        code = _HTTP_STATUS.get(result.status, status.HTTP_400_BAD_REQUEST)
        logger.debug("Request failed with %s: %s", code, result.message)
        raise HTTPException(
            status_code=code,
            detail={
                "message": escape_html(result.message),
                "status": result.status.value,
                "error_code": result.error.error_code if result.error else None,
            },
        )

    def _respond(self, result: OperationResult, data=None) -> OperationResponse:
        """Convert a result to a response, raising for blocking failures."""
        self._raise_for_failure(result)
        payload = None
        if data is not None and result.data is not None:
            payload = data(result.data)
        return OperationResponse(
            success=result.success,
            status=result.status.value,
            message=escape_html(result.message),
            level=result.level.value,
            warnings=list(result.warnings),
            data=payload,
        )

    def _user_to_response(self, user: User) -> UserResponse:
        """Convert User entity to response model."""
        return UserResponse(id=user.id, name=escape_html(user.name), role=user.role.value)

    def _course_to_dict(self, course: Course) -> Dict[str, Any]:
        return {
            "id": course.id,
            "title": escape_html(course.title),
            "description": escape_html(course.description),
            "instructor_id": course.instructor_id,
            "student_count": len(course.students),
        }

    def _course_view_to_response(self, view: CourseView) -> CourseResponse:
        """Convert a course view to response model."""
        return CourseResponse(
            id=view.course.id,
            title=escape_html(view.course.title),
            description=escape_html(view.course.description),
            instructor_id=view.course.instructor_id,
            instructor_name=escape_html(view.instructor_name),
            student_count=len(view.course.students),
            enrolled=view.enrolled,
            can_enroll=view.can_enroll,
            can_manage=view.can_manage,
        )

    def _assignment_to_dict(self, assignment: Assignment) -> Dict[str, Any]:
        return {
            "id": assignment.id,
            "course_id": assignment.course_id,
            "title": escape_html(assignment.title),
            "description": escape_html(assignment.description),
            "due_date": assignment.due_date,
        }

    def _assignment_view_to_response(self, view: AssignmentView) -> AssignmentResponse:
        """Convert an assignment view to response model."""
        return AssignmentResponse(
            id=view.assignment.id,
            course_id=view.assignment.course_id,
            course_title=escape_html(view.course_title),
            title=escape_html(view.assignment.title),
            description=escape_html(view.assignment.description),
            due_date=view.assignment.due_date,
            submitted=view.submitted,
            can_submit=view.can_submit,
            can_grade=view.can_grade,
        )

    def _submission_to_dict(self, submission: Submission) -> Dict[str, Any]:
        return {
            "student_id": submission.student_id,
            "text": escape_html(submission.text),
            "grade": escape_html(submission.grade) if submission.grade is not None else None,
            "submitted_at": submission.submitted_at,
        }

    def _submission_view_to_response(self, view: SubmissionView) -> SubmissionResponse:
        """Convert a submission view to response model."""
        submission = view.submission
        return SubmissionResponse(
            index=view.index,
            student_name=escape_html(view.student_name),
            text=escape_html(submission.text),
            grade=escape_html(submission.grade) if submission.grade is not None else None,
            submitted_at=submission.submitted_at,
        )
