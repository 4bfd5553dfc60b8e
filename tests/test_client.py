import socket
import threading
import time
from unittest import mock

import pytest
import requests
import uvicorn

from lmsportal.client import PortalClient, PortalClientError
from lmsportal.main import LMSPortal
from lmsportal.sample_data import main as sample_data_main
from lmsportal.sample_data import populate


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _response(status_code, payload):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    response.text = str(payload)
    return response


@pytest.fixture
def live_server(monkeypatch):
    """Serve a memory-backed portal with uvicorn on a free local port."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    portal = LMSPortal({"storage_type": "memory"})
    port = _free_port()
    server = uvicorn.Server(uvicorn.Config(portal.app, host="127.0.0.1", port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.time() + 10
    while not server.started:
        if time.time() > deadline:
            pytest.fail("portal server did not start")
        time.sleep(0.05)

    yield portal, f"http://127.0.0.1:{port}"

    server.should_exit = True
    thread.join(timeout=5)


class TestPortalClientErrors:

    def test_structured_error_detail(self):
        session = mock.Mock(spec=requests.Session)
        session.request.return_value = _response(409, {"detail": {
            "message": "You have already submitted this assignment",
            "status": "already_submitted",
            "error_code": "already_submitted",
        }})
        client = PortalClient("http://lms.test/", session=session)

        with pytest.raises(PortalClientError) as exc_info:
            client.submit("a1", "My answer")

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "You have already submitted this assignment"
        session.request.assert_called_once_with(
            "POST", "http://lms.test/assignments/a1/submissions",
            json={"text": "My answer"}, params=None, timeout=5.0,
        )

    def test_plain_error_detail(self):
        session = mock.Mock(spec=requests.Session)
        session.request.return_value = _response(401, {"detail": "Please log in first"})

        with pytest.raises(PortalClientError) as exc_info:
            PortalClient("http://lms.test", session=session).list_courses()

        assert exc_info.value.message == "Please log in first"

    def test_connection_failure(self):
        session = mock.Mock(spec=requests.Session)
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(PortalClientError) as exc_info:
            PortalClient("http://lms.test", session=session).health()

        assert exc_info.value.status_code is None

    def test_assignment_filter_is_a_query_parameter(self):
        session = mock.Mock(spec=requests.Session)
        session.request.return_value = _response(200, [])

        assert PortalClient("http://lms.test", session=session, timeout=1.0).list_assignments("c1") == []
        session.request.assert_called_once_with(
            "GET", "http://lms.test/assignments", json=None, params={"course_id": "c1"}, timeout=1.0,
        )


class TestAgainstLiveServer:

    def test_round_trip(self, live_server):
        _, base_url = live_server
        client = PortalClient(base_url)

        assert client.health()["status"] == "healthy"
        user = client.login("Alice", "instructor")["data"]
        assert client.current_user()["id"] == user["id"]
        course = client.create_course("Algorithms", "Sorting")["data"]
        assert client.roster(course["id"])["student_count"] == 0
        client.logout()

        with pytest.raises(PortalClientError) as exc_info:
            client.current_user()
        assert exc_info.value.status_code == 401

    def test_validation_error_message(self, live_server):
        _, base_url = live_server

        with pytest.raises(PortalClientError) as exc_info:
            PortalClient(base_url).login("", "student")

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Please enter your name"

    def test_populate(self, live_server):
        portal, base_url = live_server

        created = populate(PortalClient(base_url))

        course = portal.store.find_course(created["course"]["id"])
        assignment = portal.store.find_assignment(created["assignment"]["id"])
        assert course.title == "Intro to Python"
        assert course.students == [created["student"]["id"]]
        assert portal.store.find_course("c1").students == [created["student"]["id"]]
        assert [s.student_id for s in assignment.submissions] == [created["student"]["id"]]
        assert portal.session.current_user is None

    def test_sample_data_script(self, live_server):
        portal, base_url = live_server

        assert sample_data_main(["--base-url", base_url]) == 0
        assert any(course.title == "Intro to Python" for course in portal.store.courses)


def test_sample_data_script_without_server():
    assert sample_data_main(["--base-url", f"http://127.0.0.1:{_free_port()}"]) == 1
