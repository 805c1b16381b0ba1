from __future__ import annotations

import pytest
import requests

from src.attendance_sync.attendance_sync.attendance.model import (
    AttendanceRow,
    BatchRequest,
    MeetingContext,
    Subject,
    UpsertRow,
)
from src.attendance_sync.attendance_sync.attendance.service import AttendanceGateway
from src.attendance_sync.attendance_sync.core.enums import AttendanceStatus, ErrorKind
from src.attendance_sync.attendance_sync.core.exceptions import NetworkFailure
from src.attendance_sync.attendance_sync.ledger.session import AttendanceSession
from src.attendance_sync.attendance_sync.ledger.transport import HttpAttendanceClient, LocalGatewayClient


class StubResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code}", response=self)


class StubSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _answer(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._answer("POST", url, kwargs)

    def get(self, url, **kwargs):
        return self._answer("GET", url, kwargs)


REQUEST = BatchRequest(
    meeting_id="mtg-1",
    upserts=(UpsertRow(None, Subject.guest("g-1"), AttendanceStatus.PRESENT),),
    deletions=("a-9",),
)


def test_send_posts_the_batch_and_parses_the_response():
    session = StubSession(
        StubResponse(
            200,
            {
                "success": True,
                "records": [{"id": "a-1", "member_id": None, "guest_id": "g-1", "pipeliner_id": None, "status": "present"}],
                "deletedIds": ["a-9"],
            },
        )
    )
    client = HttpAttendanceClient("http://localhost:5000/", session=session, access_token="user-jwt")

    response = client.send(REQUEST)

    assert response.success
    assert response.records == (AttendanceRow("a-1", Subject.guest("g-1"), AttendanceStatus.PRESENT),)
    assert response.deleted_ids == ("a-9",)
    _, url, kwargs = session.calls[0]
    assert url == "http://localhost:5000/attendance/save"
    assert kwargs["json"]["meetingId"] == "mtg-1"
    assert kwargs["json"]["deletions"] == ["a-9"]
    assert kwargs["headers"]["Authorization"] == "Bearer user-jwt"


def test_send_raises_network_failure_when_unreachable():
    client = HttpAttendanceClient("http://localhost:5000", session=StubSession(error=requests.ConnectionError("refused")))

    with pytest.raises(NetworkFailure):
        client.send(REQUEST)


def test_error_status_is_never_treated_as_success():
    client = HttpAttendanceClient("http://localhost:5000", session=StubSession(StubResponse(500, {"success": True})))

    response = client.send(REQUEST)

    assert not response.success
    assert response.error_kind is ErrorKind.STORE_FAILURE


def test_error_body_keeps_its_kind():
    payload = {"success": False, "error": "meetingId is required.", "errorKind": "VALIDATION"}
    client = HttpAttendanceClient("http://localhost:5000", session=StubSession(StubResponse(400, payload)))

    response = client.send(REQUEST)

    assert response.error == "meetingId is required."
    assert response.error_kind is ErrorKind.VALIDATION


def test_non_json_error_page():
    client = HttpAttendanceClient("http://localhost:5000", session=StubSession(StubResponse(502)))

    response = client.send(REQUEST)

    assert not response.success
    assert "HTTP 502" in response.error


def test_fetch_rows():
    payload = {
        "success": True,
        "records": [{"id": "a-1", "member_id": "m-1", "guest_id": None, "pipeliner_id": None, "status": "absent"}],
    }
    session = StubSession(StubResponse(200, payload))

    rows = HttpAttendanceClient("http://localhost:5000", session=session).fetch_rows("mtg-1")

    assert rows == [AttendanceRow("a-1", Subject.member("m-1"), AttendanceStatus.ABSENT)]
    assert session.calls[0][1] == "http://localhost:5000/attendance/mtg-1"


def test_fetch_rows_failure_raises():
    client = HttpAttendanceClient("http://localhost:5000", session=StubSession(StubResponse(500, {"success": False})))

    with pytest.raises(NetworkFailure):
        client.fetch_rows("mtg-1")


def test_local_client_surfaces_read_failures():
    client = LocalGatewayClient(AttendanceGateway(None))

    with pytest.raises(NetworkFailure):
        client.fetch_rows("mtg-1")

    assert client.send(REQUEST).error_kind is ErrorKind.CONFIGURATION


@pytest.mark.parametrize(
    "payload",
    [
        {"success": True, "records": [{"id": "a-1", "member_id": "m-1", "status": "late"}]},
        {"success": True, "records": [{"id": "a-1", "status": "present"}]},
        {"success": True, "records": ["a-1"]},
        {"success": True, "records": "a-1"},
        ["a-1"],
    ],
)
def test_unreadable_rows_are_a_network_failure(payload):
    client = HttpAttendanceClient("http://localhost:5000", session=StubSession(StubResponse(200, payload)))

    with pytest.raises(NetworkFailure):
        client.fetch_rows("mtg-1")


def test_session_reports_unreadable_rows_instead_of_raising():
    notices = []
    payload = {"success": True, "records": [{"id": "a-1", "member_id": "m-1", "status": "late"}]}
    session = AttendanceSession(
        HttpAttendanceClient("http://localhost:5000", session=StubSession(StubResponse(200, payload))),
        notifier=lambda level, message: notices.append((level, message)),
    )

    session.set_meeting(MeetingContext("mtg-1"))

    assert [level for level, _ in notices] == ["error"]
    assert "late" in session.last_error
    assert len(session.ledger) == 0
    session.close()
