import json

import pytest

from lmsportal.core.enums import STORAGE_KEY, NotificationLevel, OperationStatus, Role
from lmsportal.core.exceptions import StorageFullError, TooShortError
from lmsportal.persistence import SessionManager
from lmsportal.services import AccountService


def test_login_creates_user_and_session(accounts, store, session, storage):
    result = accounts.login("  Alice  ", "instructor")

    assert result.success
    assert result.status is OperationStatus.CREATED
    user = result.data
    assert user.id.startswith("u")
    assert user.name == "Alice"
    assert user.role is Role.INSTRUCTOR
    assert store.find_user(user.id) == user
    assert session.current_user == user
    assert json.loads(storage.get(STORAGE_KEY))["users"] == [user.to_dict()]


def test_each_login_registers_a_new_user(accounts, store):
    first = accounts.login("Bob", "student").data
    second = accounts.login("Bob", "student").data

    assert first.id != second.id
    assert len(store.users) == 2


@pytest.mark.parametrize("name, role, message", [
    ("", "student", "Please enter your name"),
    ("   ", "student", "Please enter your name"),
    ("", "", "Please enter your name"),
    ("Bob", "", "Please select a role"),
    ("Bob", "admin", "Please select a role"),
    ("Bob", None, "Please select a role"),
])
def test_login_rejects_missing_fields(accounts, store, name, role, message):
    result = accounts.login(name, role)

    assert not result.success
    assert result.status is OperationStatus.INVALID
    assert result.message == message
    assert store.users == []


def test_login_rejects_short_name(accounts, session):
    result = accounts.login("A", "student")

    assert result.status is OperationStatus.INVALID
    assert isinstance(result.error, TooShortError)
    assert session.current_user is None


def test_login_sanitizes_name(accounts):
    user = accounts.login("<Bob>", Role.STUDENT).data
    assert user.name == "&lt;Bob&gt;"


def test_login_warns_when_storage_is_full(accounts, storage, session):
    storage.fail_writes = StorageFullError("quota exceeded")

    result = accounts.login("Bob", "student")

    assert result.success
    assert result.level is NotificationLevel.WARNING
    assert result.warnings == ["Storage is full. Please clear some data."]
    assert session.current_user == result.data


def test_logout_is_idempotent(accounts, session):
    accounts.login("Bob", "student")

    assert accounts.logout().success
    assert accounts.logout().success
    assert session.current_user is None


def test_restore_session_after_restart(accounts, store, locks):
    user = accounts.login("Bob", "student").data
    restarted = AccountService(store, SessionManager(store.storage), locks)

    assert restarted.current_user() is None
    assert restarted.restore_session() == user
    assert restarted.current_user() == user
