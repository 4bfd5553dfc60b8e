"""
Course service: course creation, enrollment and the course views.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from ..core.entities import Course, User, generate_id
from ..core.enums import MIN_TITLE_LENGTH, OperationStatus, Role
from ..core.exceptions import (
    AlreadyEnrolledError, AuthorizationError, ResourceNotFoundError,
    TooShortError, ValidationError,
)
from ..core.text import sanitize_input
from .base import BaseService, OperationResult


@dataclass
class CourseView:
    """A course as listed for the current user."""
    course: Course
    instructor_name: str
    enrolled: bool
    can_enroll: bool
    can_manage: bool


@dataclass
class CourseOverview:
    """What an instructor sees when managing a course."""
    course: Course
    student_names: List[str]

    @property
    def student_count(self) -> int:
        return len(self.student_names)


def validate_title(title: Any) -> str:
    """Trim a title and enforce its minimum length."""
    trimmed = title.strip() if isinstance(title, str) else ""
    if not trimmed:
        raise ValidationError("Title is required", details={"field": "title"})
    if len(trimmed) < MIN_TITLE_LENGTH:
        raise TooShortError(
            f"Title must be at least {MIN_TITLE_LENGTH} characters",
            details={"field": "title"},
        )
    return trimmed


class CourseService(BaseService):
    """Domain operations and derived views for courses."""

    def create_course(self, title: Any, description: Any, instructor_id: Optional[str]) -> OperationResult:
        """Create a course owned by ``instructor_id``."""
        return self._execute("create_course", lambda: self._create_course(title, description, instructor_id))

    def _create_course(self, title: Any, description: Any, instructor_id: Optional[str]) -> OperationResult:
        instructor = self._require_user(instructor_id, Role.INSTRUCTOR)
        trimmed_title = validate_title(title)
        trimmed_description = description.strip() if isinstance(description, str) else ""

        with self._store.locked() as state:
            course = Course(
                id=generate_id("c", state.all_ids()),
                title=sanitize_input(trimmed_title),
                description=sanitize_input(trimmed_description),
                instructor_id=instructor.id,
                students=[],
            )
            self._store.add_course(course)
            storage_error = self._store.save()
        return OperationResult.ok(
            "Course created successfully!",
            data=course,
            status=OperationStatus.CREATED,
            storage_error=storage_error,
        )

    def enroll_in_course(self, course_id: Optional[str], student_id: Optional[str]) -> OperationResult:
        """Add a student to a course roster, at most once."""
        return self._execute("enroll_in_course", lambda: self._enroll(course_id, student_id))

    def _enroll(self, course_id: Optional[str], student_id: Optional[str]) -> OperationResult:
        student = self._require_user(student_id, Role.STUDENT)
        course = self._store.find_course(course_id)
        if course is None:
            raise ResourceNotFoundError("Course not found", details={"course_id": course_id})
        with self._concurrency_manager.lock(f"course:{course.id}", holder_id=student.id):
            if course.has_student(student.id):
                raise AlreadyEnrolledError(
                    "You are already enrolled in this course",
                    details={"course_id": course.id, "student_id": student.id},
                )
            with self._store.locked():
                course.add_student(student.id)
                storage_error = self._store.save()
        return OperationResult.ok("Enrolled successfully!", data=course, storage_error=storage_error)

    def manage_course(self, course_id: Optional[str], instructor_id: Optional[str]) -> OperationResult:
        """Roster overview, restricted to the owning instructor."""
        return self._execute("manage_course", lambda: self._manage(course_id, instructor_id))

    def _manage(self, course_id: Optional[str], instructor_id: Optional[str]) -> OperationResult:
        instructor = self._require_user(instructor_id, Role.INSTRUCTOR)
        course = self._store.find_course(course_id)
        if course is None:
            raise ResourceNotFoundError("Course not found", details={"course_id": course_id})
        if not course.is_owned_by(instructor.id):
            raise AuthorizationError("Only the course instructor can manage this course")
        overview = CourseOverview(course=course, student_names=self.course_roster(course.id))
        return OperationResult.ok(f"Students enrolled: {overview.student_count}", data=overview)

    # Read-only derivations

    def list_courses(self, viewer: Optional[User] = None) -> List[CourseView]:
        """All courses, annotated for the viewer."""
        views = []
        for course in self._store.courses:
            enrolled = viewer is not None and viewer.is_student and course.has_student(viewer.id)
            views.append(CourseView(
                course=course,
                instructor_name=self.instructor_display_name(course),
                enrolled=enrolled,
                can_enroll=viewer is not None and viewer.is_student and not enrolled,
                can_manage=viewer is not None and viewer.is_instructor and course.is_owned_by(viewer.id),
            ))
        return views

    def is_enrolled(self, course_id: Optional[str], student_id: Optional[str]) -> bool:
        course = self._store.find_course(course_id)
        return course is not None and course.has_student(student_id)

    def instructor_display_name(self, course: Course) -> str:
        """Instructor's name, "TBD" when unassigned, "Instructor" when unknown."""
        if not course.instructor_id:
            return "TBD"
        instructor = self._store.find_user(course.instructor_id)
        return instructor.name if instructor is not None else "Instructor"

    def courses_taught_by(self, instructor_id: Optional[str]) -> List[Course]:
        return [course for course in self._store.courses if course.is_owned_by(instructor_id)]

    def course_roster(self, course_id: Optional[str]) -> List[str]:
        """Names of enrolled students, in enrollment order."""
        course = self._store.find_course(course_id)
        if course is None:
            return []
        names = []
        for student_id in course.students:
            user = self._store.find_user(student_id)
            names.append(user.name if user is not None else "Unknown student")
        return names
