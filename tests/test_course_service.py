import threading

import pytest

from lmsportal.core.entities import Course
from lmsportal.core.enums import NotificationLevel, OperationStatus
from lmsportal.core.exceptions import TooShortError


class TestCreateCourse:

    def test_instructor_creates_course(self, courses, store, instructor):
        result = courses.create_course(" Algorithms ", "Sorting", instructor.id)

        assert result.status is OperationStatus.CREATED
        assert result.message == "Course created successfully!"
        course = result.data
        assert course.id.startswith("c")
        assert course.title == "Algorithms"
        assert course.instructor_id == instructor.id
        assert course.students == []
        assert store.find_course(course.id) is course

    def test_title_and_description_are_sanitized(self, courses, instructor):
        course = courses.create_course("<i>Web</i>", "A & B", instructor.id).data
        assert course.title == "&lt;i&gt;Web&lt;/i&gt;"
        assert course.description == "A &amp; B"

    def test_title_is_required(self, courses, instructor):
        result = courses.create_course("   ", "", instructor.id)
        assert result.status is OperationStatus.INVALID
        assert result.message == "Title is required"

    def test_title_must_not_be_too_short(self, courses, instructor):
        result = courses.create_course("AB", "", instructor.id)
        assert isinstance(result.error, TooShortError)

    def test_students_cannot_create_courses(self, courses, student, store):
        result = courses.create_course("Algorithms", "", student.id)

        assert result.status is OperationStatus.FORBIDDEN
        assert result.message == "Only instructors can do that"
        assert len(store.courses) == 2

    def test_requires_a_known_user(self, courses):
        result = courses.create_course("Algorithms", "", "ughost")
        assert result.status is OperationStatus.FORBIDDEN
        assert result.message == "Please log in first"


class TestEnroll:

    def test_student_enrolls_once(self, courses, course, student):
        first = courses.enroll_in_course(course.id, student.id)
        second = courses.enroll_in_course(course.id, student.id)

        assert first.success
        assert first.message == "Enrolled successfully!"
        assert not second.success
        assert second.status is OperationStatus.ALREADY_ENROLLED
        assert second.level is NotificationLevel.INFO
        assert second.is_informational
        assert course.students == [student.id]

    def test_seed_course_accepts_enrollment(self, courses, student):
        assert courses.enroll_in_course("c1", student.id).success
        assert courses.is_enrolled("c1", student.id)

    def test_missing_course(self, courses, student):
        result = courses.enroll_in_course("c404", student.id)
        assert result.status is OperationStatus.NOT_FOUND
        assert result.message == "Course not found"

    def test_unknown_courses_leave_no_lock_entries(self, courses, locks, course, student):
        for n in range(100):
            assert courses.enroll_in_course(f"missing-{n}", student.id).status is OperationStatus.NOT_FOUND
        courses.enroll_in_course(course.id, student.id)

        assert locks.tracked_resources == 0

    def test_instructors_cannot_enroll(self, courses, course, instructor):
        result = courses.enroll_in_course(course.id, instructor.id)
        assert result.status is OperationStatus.FORBIDDEN
        assert course.students == []

    def test_concurrent_enrollments_add_one_entry(self, courses, course, student):
        barrier = threading.Barrier(8)
        results = []

        def enroll():
            barrier.wait()
            results.append(courses.enroll_in_course(course.id, student.id))

        threads = [threading.Thread(target=enroll) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for result in results if result.success) == 1
        assert course.students == [student.id]


class TestManageCourse:

    def test_owner_sees_roster(self, courses, course, instructor, student):
        courses.enroll_in_course(course.id, student.id)

        result = courses.manage_course(course.id, instructor.id)

        assert result.success
        assert result.message == "Students enrolled: 1"
        assert result.data.student_names == ["Bob"]

    def test_other_instructor_is_forbidden(self, courses, accounts, course):
        other = accounts.login("Carol", "instructor").data
        assert courses.manage_course(course.id, other.id).status is OperationStatus.FORBIDDEN

    def test_unowned_seed_course_is_forbidden(self, courses, instructor):
        assert courses.manage_course("c1", instructor.id).status is OperationStatus.FORBIDDEN


class TestDerivations:

    def test_list_courses_for_student(self, courses, course, student):
        courses.enroll_in_course(course.id, student.id)

        views = {view.course.id: view for view in courses.list_courses(student)}

        assert views[course.id].enrolled
        assert not views[course.id].can_enroll
        assert views["c1"].can_enroll
        assert not views["c1"].can_manage

    def test_list_courses_for_owner(self, courses, course, instructor):
        views = {view.course.id: view for view in courses.list_courses(instructor)}

        assert views[course.id].can_manage
        assert views[course.id].instructor_name == "Alice"
        assert not views[course.id].can_enroll

    @pytest.mark.parametrize("instructor_id, expected", [(None, "TBD"), ("ughost", "Instructor")])
    def test_instructor_display_fallbacks(self, courses, instructor_id, expected):
        course = Course(id="c9", title="Orphan", instructor_id=instructor_id)
        assert courses.instructor_display_name(course) == expected

    def test_roster_names_unknown_students(self, courses, course, student):
        courses.enroll_in_course(course.id, student.id)
        course.students.append("ughost")

        assert courses.course_roster(course.id) == ["Bob", "Unknown student"]
        assert courses.course_roster("c404") == []

    def test_courses_taught_by(self, courses, course, instructor, student):
        assert courses.courses_taught_by(instructor.id) == [course]
        assert courses.courses_taught_by(student.id) == []
