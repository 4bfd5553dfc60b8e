"""
Core entities for the LMS portal.

Records serialize to the camelCase layout of the persisted state record so
that a stored document reads ``{"users": [...], "courses": [...],
"assignments": [...]}`` with ``instructorId``, ``courseId``, ``dueDate``,
``studentId`` and ``submittedAt`` keys.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Collection, Dict, List, Optional

from .enums import Role


def generate_id(prefix: str, existing: Collection[str] = ()) -> str:
    """Generate a short prefixed id that does not collide with ``existing``."""
    while True:
        candidate = f"{prefix}{uuid.uuid4().hex[:7]}"
        if candidate not in existing:
            return candidate


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string or null")
    return value


def _require_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise TypeError(f"'{key}' must be a list")
    return value


@dataclass(frozen=True)
class User:
    """A person logged into the portal. Immutable once created."""
    id: str
    name: str
    role: Role

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    @property
    def is_instructor(self) -> bool:
        return self.role is Role.INSTRUCTOR

    def to_dict(self) -> Dict[str, Any]:
        """Convert user to dictionary."""
        return {"id": self.id, "name": self.name, "role": self.role.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=_require_str(data, "id"),
            name=_require_str(data, "name"),
            role=Role(data["role"]),
        )


@dataclass
class Submission:
    """One student's answer to an assignment."""
    student_id: str
    text: str
    grade: Optional[str] = None
    submitted_at: Optional[str] = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentId": self.student_id,
            "text": self.text,
            "grade": self.grade,
            "submittedAt": self.submitted_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        return cls(
            student_id=_require_str(data, "studentId"),
            text=_require_str(data, "text"),
            grade=_optional_str(data, "grade"),
            submitted_at=_optional_str(data, "submittedAt"),
        )


@dataclass
class Course:
    """A course with its roster of enrolled student ids."""
    id: str
    title: str
    description: str = ""
    instructor_id: Optional[str] = None
    students: List[str] = field(default_factory=list)

    def has_student(self, student_id: str) -> bool:
        """Check if a student is on the roster."""
        return student_id in self.students

    def add_student(self, student_id: str) -> bool:
        """Append a student id; returns False if it was already present."""
        if student_id in self.students:
            return False
        self.students.append(student_id)
        return True

    def is_owned_by(self, user_id: Optional[str]) -> bool:
        return self.instructor_id is not None and self.instructor_id == user_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert course to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "instructorId": self.instructor_id,
            "students": list(self.students),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        students = _require_list(data, "students")
        if not all(isinstance(student_id, str) for student_id in students):
            raise TypeError("'students' must hold string ids")
        return cls(
            id=_require_str(data, "id"),
            title=_require_str(data, "title"),
            description=_optional_str(data, "description") or "",
            instructor_id=_optional_str(data, "instructorId"),
            # Collapse duplicates written by older data while keeping order
            students=list(dict.fromkeys(students)),
        )


@dataclass
class Assignment:
    """An assignment under a course, holding its submissions."""
    id: str
    course_id: str
    title: str
    description: str = ""
    due_date: Optional[str] = None
    submissions: List[Submission] = field(default_factory=list)

    def find_submission(self, student_id: str) -> Optional[Submission]:
        """Return the submission made by a student, if any."""
        for submission in self.submissions:
            if submission.student_id == student_id:
                return submission
        return None

    def has_submission_from(self, student_id: str) -> bool:
        return self.find_submission(student_id) is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert assignment to dictionary."""
        return {
            "id": self.id,
            "courseId": self.course_id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date,
            "submissions": [submission.to_dict() for submission in list(self.submissions)],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        return cls(
            id=_require_str(data, "id"),
            course_id=_require_str(data, "courseId"),
            title=_require_str(data, "title"),
            description=_optional_str(data, "description") or "",
            due_date=_optional_str(data, "dueDate") or None,
            submissions=[Submission.from_dict(item) for item in _require_list(data, "submissions")],
        )


@dataclass
class State:
    """The three canonical collections owned by the state store."""
    users: List[User] = field(default_factory=list)
    courses: List[Course] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)

    @classmethod
    def seed(cls) -> "State":
        """Fresh seed state: two example courses, no users or assignments."""
        return cls(
            users=[],
            courses=[
                Course(id="c1", title="Intro to Web", description="HTML, CSS, JS basics"),
                Course(id="c2", title="Data Structures", description="Arrays, LinkedList, Trees"),
            ],
            assignments=[],
        )

    def all_ids(self) -> set:
        """Every user, course and assignment id currently in use."""
        ids = {user.id for user in self.users}
        ids.update(course.id for course in self.courses)
        ids.update(assignment.id for assignment in self.assignments)
        return ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [user.to_dict() for user in list(self.users)],
            "courses": [course.to_dict() for course in list(self.courses)],
            "assignments": [assignment.to_dict() for assignment in list(self.assignments)],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "State":
        if not isinstance(data, dict):
            raise TypeError("state record must be a JSON object")
        return cls(
            users=[User.from_dict(item) for item in _require_list(data, "users")],
            courses=[Course.from_dict(item) for item in _require_list(data, "courses")],
            assignments=[Assignment.from_dict(item) for item in _require_list(data, "assignments")],
        )
