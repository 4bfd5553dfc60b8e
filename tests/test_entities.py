from types import SimpleNamespace

import pytest

from lmsportal.core import entities
from lmsportal.core.entities import Assignment, Course, State, Submission, User, generate_id
from lmsportal.core.enums import Role


def test_generate_id_has_prefix():
    new_id = generate_id("u")
    assert new_id.startswith("u")
    assert len(new_id) == 8


def test_generate_id_redraws_on_collision(monkeypatch):
    draws = iter([SimpleNamespace(hex="aaaaaaa0"), SimpleNamespace(hex="bbbbbbb0")])
    monkeypatch.setattr(entities.uuid, "uuid4", lambda: next(draws))

    assert generate_id("u", {"uaaaaaaa"}) == "ubbbbbbb"


def test_seed_state_has_two_courses():
    state = State.seed()

    assert state.users == []
    assert state.assignments == []
    assert [(c.id, c.title, c.description) for c in state.courses] == [
        ("c1", "Intro to Web", "HTML, CSS, JS basics"),
        ("c2", "Data Structures", "Arrays, LinkedList, Trees"),
    ]
    assert all(c.instructor_id is None for c in state.courses)


def test_state_serializes_with_camel_case_keys():
    state = State(
        users=[User(id="u1", name="Bob", role=Role.STUDENT)],
        courses=[Course(id="c9", title="Algo", instructor_id="u2", students=["u1"])],
        assignments=[Assignment(
            id="a1", course_id="c9", title="HW", due_date="2030-01-15",
            submissions=[Submission(student_id="u1", text="answer", submitted_at="2030-01-01T00:00:00+00:00")],
        )],
    )

    data = state.to_dict()

    assert data["courses"][0]["instructorId"] == "u2"
    assert data["assignments"][0]["courseId"] == "c9"
    assert data["assignments"][0]["dueDate"] == "2030-01-15"
    assert data["assignments"][0]["submissions"][0] == {
        "studentId": "u1",
        "text": "answer",
        "grade": None,
        "submittedAt": "2030-01-01T00:00:00+00:00",
    }
    assert State.from_dict(data) == state


def test_course_from_dict_drops_duplicate_students():
    course = Course.from_dict({"id": "c1", "title": "Web", "students": ["u1", "u2", "u1"]})
    assert course.students == ["u1", "u2"]


def test_course_ownership_and_roster():
    course = Course(id="c1", title="Web")

    assert not course.is_owned_by(None)
    assert course.add_student("u1")
    assert not course.add_student("u1")
    assert course.students == ["u1"]


def test_assignment_finds_submission_by_student():
    assignment = Assignment(id="a1", course_id="c1", title="HW")
    assignment.submissions.append(Submission(student_id="u1", text="hello"))

    assert assignment.has_submission_from("u1")
    assert not assignment.has_submission_from("u2")
    assert assignment.find_submission("u1").text == "hello"


def test_user_is_immutable():
    user = User(id="u1", name="Bob", role=Role.STUDENT)
    with pytest.raises(AttributeError):
        user.name = "Robert"


@pytest.mark.parametrize("data, error", [
    ([], TypeError),
    ({"users": "nope"}, TypeError),
    ({"users": [{"id": "u1", "name": "Bob", "role": "admin"}]}, ValueError),
    ({"courses": [{"title": "No id"}]}, KeyError),
    ({"courses": [{"id": "c1", "title": "Web", "students": [1, 2]}]}, TypeError),
])
def test_state_from_dict_rejects_bad_shapes(data, error):
    with pytest.raises(error):
        State.from_dict(data)


def test_missing_submission_time_round_trips_as_null():
    data = {"studentId": "u1", "text": "answer", "grade": None, "submittedAt": None}

    submission = Submission.from_dict(data)

    assert submission.submitted_at is None
    assert submission.to_dict() == data
