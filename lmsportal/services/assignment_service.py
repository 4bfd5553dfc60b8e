"""
Assignment service: assignment creation, submission and grading.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from ..core.entities import Assignment, Course, Submission, User, generate_id, utc_timestamp
from ..core.enums import MIN_SUBMISSION_LENGTH, OperationStatus, Role
from ..core.exceptions import (
    AlreadySubmittedError, AuthorizationError, NotEnrolledError,
    ResourceNotFoundError, TooShortError, ValidationError,
)
from ..core.text import is_valid_date, sanitize_input
from .base import BaseService, OperationResult
from .course_service import validate_title


@dataclass
class AssignmentView:
    """An assignment as listed for the current user."""
    assignment: Assignment
    course_title: str
    submitted: bool
    can_submit: bool
    can_grade: bool


@dataclass
class SubmissionView:
    """A submission as shown to the grading instructor."""
    index: int
    student_name: str
    submission: Submission


class AssignmentService(BaseService):
    """Domain operations and derived views for assignments."""

    def ensure_can_create_assignment(self, instructor_id: Optional[str]) -> OperationResult:
        """Pre-form check: the instructor must own at least one course.

        On success ``data`` holds the courses the new assignment may go under.
        """
        return self._execute("ensure_can_create_assignment", lambda: self._owned_courses(instructor_id))

    def _owned_courses(self, instructor_id: Optional[str]) -> OperationResult:
        instructor = self._require_user(instructor_id, Role.INSTRUCTOR)
        courses = [course for course in self._store.courses if course.is_owned_by(instructor.id)]
        if not courses:
            raise ValidationError("You must create a course first")
        return OperationResult.ok("Choose a course", data=courses)

    def create_assignment(self, course_id: Optional[str], title: Any, description: Any,
                          due_date: Any, instructor_id: Optional[str]) -> OperationResult:
        """Create an assignment under a course the instructor owns."""
        return self._execute(
            "create_assignment",
            lambda: self._create_assignment(course_id, title, description, due_date, instructor_id),
        )

    def _create_assignment(self, course_id, title, description, due_date, instructor_id) -> OperationResult:
        self._owned_courses(instructor_id)
        course = self._store.find_course(course_id)
        if course is None:
            raise ResourceNotFoundError("Course not found", details={"course_id": course_id})
        if not course.is_owned_by(instructor_id):
            raise AuthorizationError("You can only add assignments to your own courses")

        trimmed_title = validate_title(title)
        due = due_date.strip() if isinstance(due_date, str) else due_date
        if due and not is_valid_date(due):
            raise ValidationError(
                "Please enter a valid date (YYYY-MM-DD)",
                details={"field": "due_date", "value": due},
            )
        trimmed_description = description.strip() if isinstance(description, str) else ""

        with self._store.locked() as state:
            assignment = Assignment(
                id=generate_id("a", state.all_ids()),
                course_id=course.id,
                title=sanitize_input(trimmed_title),
                description=sanitize_input(trimmed_description),
                due_date=due or None,
                submissions=[],
            )
            self._store.add_assignment(assignment)
            storage_error = self._store.save()
        return OperationResult.ok(
            "Assignment created successfully!",
            data=assignment,
            status=OperationStatus.CREATED,
            storage_error=storage_error,
        )

    def check_can_submit(self, assignment_id: Optional[str], student_id: Optional[str]) -> OperationResult:
        """Pre-form check run before the submission input is shown."""
        return self._execute("check_can_submit", lambda: self._submission_target(assignment_id, student_id))

    def _submission_target(self, assignment_id: Optional[str], student_id: Optional[str]) -> OperationResult:
        student = self._require_user(student_id, Role.STUDENT)
        assignment = self._store.find_assignment(assignment_id)
        if assignment is None:
            raise ResourceNotFoundError("Assignment not found", details={"assignment_id": assignment_id})
        course = self._store.find_course(assignment.course_id)
        if course is None:
            raise ResourceNotFoundError("Course not found", details={"course_id": assignment.course_id})
        if not course.has_student(student.id):
            raise NotEnrolledError(
                "You must enroll in the course first",
                details={"course_id": course.id, "student_id": student.id},
            )
        if assignment.has_submission_from(student.id):
            raise AlreadySubmittedError(
                "You have already submitted this assignment",
                details={"assignment_id": assignment.id, "student_id": student.id},
            )
        return OperationResult.ok("Ready to submit", data=assignment)

    def submit_assignment(self, assignment_id: Optional[str], student_id: Optional[str],
                          text: Any) -> OperationResult:
        """Record a student's single submission for an assignment."""
        return self._execute("submit_assignment", lambda: self._submit(assignment_id, student_id, text))

    def _submit(self, assignment_id: Optional[str], student_id: Optional[str], text: Any) -> OperationResult:
        assignment = self._submission_target(assignment_id, student_id).data

        sanitized = sanitize_input(text.strip() if isinstance(text, str) else "")
        if not sanitized:
            raise ValidationError("Please enter your submission", details={"field": "text"})
        if len(sanitized) < MIN_SUBMISSION_LENGTH:
            raise TooShortError(
                f"Submission must be at least {MIN_SUBMISSION_LENGTH} characters",
                details={"field": "text"},
            )

        with self._concurrency_manager.lock(f"assignment:{assignment.id}", holder_id=student_id):
            # Re-check under the lock: another request may have appended since the first check.
            if assignment.has_submission_from(student_id):
                raise AlreadySubmittedError(
                    "You have already submitted this assignment",
                    details={"assignment_id": assignment.id, "student_id": student_id},
                )
            submission = Submission(student_id=student_id, text=sanitized, grade=None, submitted_at=utc_timestamp())
            with self._store.locked():
                assignment.submissions.append(submission)
                storage_error = self._store.save()
        return OperationResult.ok(
            "Assignment submitted successfully!",
            data=submission,
            status=OperationStatus.CREATED,
            storage_error=storage_error,
        )

    def grade_submission(self, assignment_id: Optional[str], submission_index: int,
                         grade_text: Any, grader_id: Optional[str]) -> OperationResult:
        """Overwrite the grade of one submission; an empty grade changes nothing."""
        return self._execute(
            "grade_submission",
            lambda: self._grade(assignment_id, submission_index, grade_text, grader_id),
        )

    def _grade(self, assignment_id, submission_index, grade_text, grader_id) -> OperationResult:
        assignment, _ = self._graded_assignment(assignment_id, grader_id)
        trimmed = grade_text.strip() if isinstance(grade_text, str) else ""
        if not trimmed:
            return OperationResult.ok("No grade entered", status=OperationStatus.UNCHANGED)

        # bool is an int subclass, so True would address submission 1
        if (isinstance(submission_index, bool) or not isinstance(submission_index, int)
                or not 0 <= submission_index < len(assignment.submissions)):
            raise ResourceNotFoundError(
                "Submission not found",
                details={"assignment_id": assignment.id, "index": submission_index},
            )

        with self._concurrency_manager.lock(f"assignment:{assignment.id}", holder_id=grader_id):
            submission = assignment.submissions[submission_index]
            with self._store.locked():
                submission.grade = sanitize_input(trimmed)
                storage_error = self._store.save()
        return OperationResult.ok("Grade saved successfully!", data=submission, storage_error=storage_error)

    def submissions_for_grading(self, assignment_id: Optional[str], grader_id: Optional[str]) -> OperationResult:
        """Grading view of an assignment, restricted to the course owner."""
        return self._execute("submissions_for_grading", lambda: self._grading_view(assignment_id, grader_id))

    def _grading_view(self, assignment_id: Optional[str], grader_id: Optional[str]) -> OperationResult:
        assignment, _ = self._graded_assignment(assignment_id, grader_id)
        views = []
        for index, submission in enumerate(list(assignment.submissions)):
            user = self._store.find_user(submission.student_id)
            views.append(SubmissionView(
                index=index,
                student_name=user.name if user is not None else "Unknown",
                submission=submission,
            ))
        message = "No submissions yet." if not views else f"{len(views)} submission(s)"
        return OperationResult.ok(message, data=views)

    def _graded_assignment(self, assignment_id: Optional[str], grader_id: Optional[str]):
        grader = self._require_user(grader_id, Role.INSTRUCTOR)
        assignment = self._store.find_assignment(assignment_id)
        if assignment is None:
            raise ResourceNotFoundError("Assignment not found", details={"assignment_id": assignment_id})
        course = self._store.find_course(assignment.course_id)
        if course is None or not course.is_owned_by(grader.id):
            raise AuthorizationError("Only the course instructor can grade this assignment")
        return assignment, course

    # Read-only derivations

    def has_submitted(self, assignment_id: Optional[str], student_id: Optional[str]) -> bool:
        assignment = self._store.find_assignment(assignment_id)
        return assignment is not None and assignment.has_submission_from(student_id)

    def visible_assignments(self, viewer: User, course_id: Optional[str] = None) -> List[AssignmentView]:
        """Assignments the viewer may see, optionally for one course.

        Students only see assignments of courses they are enrolled in.
        """
        courses = {course.id: course for course in self._store.courses}
        views = []
        for assignment in self._store.assignments:
            if course_id is not None and assignment.course_id != course_id:
                continue
            course: Optional[Course] = courses.get(assignment.course_id)
            if viewer.is_student and (course is None or not course.has_student(viewer.id)):
                continue
            submitted = viewer.is_student and assignment.has_submission_from(viewer.id)
            views.append(AssignmentView(
                assignment=assignment,
                course_title=course.title if course is not None else "Unknown",
                submitted=submitted,
                can_submit=viewer.is_student and not submitted,
                can_grade=viewer.is_instructor and course is not None and course.is_owned_by(viewer.id),
            ))
        return views
