"""
Pytest fixtures for the LMS portal tests.

Services are wired by hand over a memory backend so each test starts from the
seed state; ``storage.fail_writes`` makes every later write raise.
"""

import pytest
from fastapi.testclient import TestClient

from lmsportal.main import LMSPortal
from lmsportal.persistence import MemoryStorage, SessionManager, StateStore
from lmsportal.services import AccountService, AssignmentService, ConcurrencyManager, CourseService


class FlakyStorage(MemoryStorage):
    """Memory storage whose writes fail on demand."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail_writes = None

    def set(self, key, value):
        if self.fail_writes is not None:
            raise self.fail_writes
        super().set(key, value)


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def store(storage):
    store = StateStore(storage)
    store.load()
    return store


@pytest.fixture
def session(storage):
    return SessionManager(storage)


@pytest.fixture
def locks():
    return ConcurrencyManager(default_timeout=2.0)


@pytest.fixture
def accounts(store, session, locks):
    return AccountService(store, session, locks)


@pytest.fixture
def courses(store, session, locks):
    return CourseService(store, session, locks)


@pytest.fixture
def assignments(store, session, locks):
    return AssignmentService(store, session, locks)


@pytest.fixture
def instructor(accounts):
    return accounts.login("Alice", "instructor").data


@pytest.fixture
def student(accounts):
    return accounts.login("Bob", "student").data


@pytest.fixture
def course(courses, instructor):
    return courses.create_course("Algorithms", "Sorting and searching", instructor.id).data


@pytest.fixture
def assignment(assignments, course, instructor):
    return assignments.create_assignment(course.id, "Homework 1", "Read chapter 1", "2030-01-15", instructor.id).data


@pytest.fixture
def portal():
    return LMSPortal({"storage_type": "memory"})


@pytest.fixture
def api(portal):
    return TestClient(portal.app)
