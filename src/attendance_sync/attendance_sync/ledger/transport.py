from __future__ import annotations

from typing import Optional, Protocol

import requests

from ..attendance.model import AttendanceRow, BatchRequest, BatchResponse
from ..attendance.repository import CallerContext
from ..attendance.service import AttendanceGateway
from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from ..core.enums import ErrorKind
from ..core.exceptions import NetworkFailure, ValidationError


class AttendanceTransport(Protocol):
    def send(self, request: BatchRequest) -> BatchResponse:
        """Submit one batch. Raises ``NetworkFailure`` if the gateway is unreachable."""
        raise NotImplementedError

    def fetch_rows(self, meeting_id: str) -> list[AttendanceRow]:
        """Persisted rows for a meeting. Raises ``NetworkFailure`` on any failure."""
        raise NotImplementedError


class HttpAttendanceClient(AttendanceTransport):
    """Talks to ``POST /attendance/save`` and ``GET /attendance/<meeting_id>``."""

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = float(timeout)
        self._headers = {"Content-Type": "application/json"}
        if access_token:
            self._headers["Authorization"] = f"Bearer {access_token}"

    def send(self, request: BatchRequest) -> BatchResponse:
        try:
            resp = self._session.post(
                f"{self._base_url}/attendance/save",
                json=request.to_payload(),
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise NetworkFailure(f"Unable to reach the attendance service: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            if resp.ok:
                return BatchResponse.failure("Malformed response from the attendance service.", ErrorKind.STORE_FAILURE)
            return BatchResponse.failure(
                f"Failed to save attendance records (HTTP {resp.status_code}).", ErrorKind.STORE_FAILURE
            )
        if not resp.ok and payload.get("success") is not False:
            payload = {**payload, "success": False}
        return BatchResponse.from_dict(payload)

    def fetch_rows(self, meeting_id: str) -> list[AttendanceRow]:
        try:
            resp = self._session.get(
                f"{self._base_url}/attendance/{meeting_id}",
                headers=self._headers,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
            if not isinstance(payload, dict) or not isinstance(payload.get("records") or [], list):
                raise ValidationError("Malformed attendance rows response")
            return [AttendanceRow.from_dict(r) for r in payload.get("records") or []]
        except (requests.RequestException, ValueError, ValidationError) as exc:
            raise NetworkFailure(f"Unable to load attendance for meeting {meeting_id}: {exc}") from exc


class LocalGatewayClient(AttendanceTransport):
    """In-process transport: calls the gateway directly, no HTTP hop."""

    def __init__(self, gateway: AttendanceGateway, *, caller: Optional[CallerContext] = None):
        self._gateway = gateway
        self._caller = caller

    def send(self, request: BatchRequest) -> BatchResponse:
        return self._gateway.apply_batch(request, caller=self._caller)

    def fetch_rows(self, meeting_id: str) -> list[AttendanceRow]:
        result = self._gateway.list_attendance(meeting_id, caller=self._caller)
        if not result.ok:
            raise NetworkFailure(result.error or f"Unable to load attendance for meeting {meeting_id}")
        return list(result.value or [])
