from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import requests

from ..core.constants import ATTENDANCE_COLUMNS, ATTENDANCE_TABLE, DEFAULT_HTTP_TIMEOUT_SECONDS
from ..core.enums import ErrorKind, StoreTier
from ..core.exceptions import ConfigurationError, ValidationError
from .model import AttendanceRow, UpsertRow
from .repository import AppliedBatch, AttendanceStore, CallerContext, StoreResult

_logger = logging.getLogger(__name__)

_SELECT_COLUMNS = ",".join(ATTENDANCE_COLUMNS)


def _error_message(exc: requests.RequestException) -> str:
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return str(exc)


class RestAttendanceStore(AttendanceStore):
    """Attendance table behind a PostgREST endpoint (``/rest/v1/attendance``).

    There is no transaction spanning the DELETE and the upsert POST. If the
    upsert fails after deletions went through, the store is left with only
    the deletions applied; that case is reported as ``PARTIAL_APPLY_RISK``.

    Upserts conflict on ``id`` only. A replayed create (no client id) gets a
    fresh id from the gateway each time, so on replay it hits the
    per-subject unique key and fails instead of updating the existing row.
    Replays are only idempotent once the rows carry their server ids.
    """

    tier: StoreTier

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        if not base_url or not api_key:
            raise ConfigurationError("SUPABASE_URL and an API key are required for the REST attendance store")
        self._url = f"{base_url.rstrip('/')}/rest/v1/{ATTENDANCE_TABLE}"
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout = float(timeout)

    def _bearer(self, caller: Optional[CallerContext]) -> str:
        return self._api_key

    def _headers(self, caller: Optional[CallerContext], *, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._bearer(caller)}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def apply(
        self,
        meeting_id: str,
        upserts: Sequence[UpsertRow],
        deletions: Sequence[str],
        *,
        caller: Optional[CallerContext] = None,
    ) -> StoreResult[AppliedBatch]:
        deletions_applied = False
        try:
            if deletions:
                resp = self._session.delete(
                    self._url,
                    params={"meeting_id": f"eq.{meeting_id}", "id": f"in.({','.join(deletions)})"},
                    headers=self._headers(caller, prefer="return=minimal"),
                    timeout=self._timeout,
                )
                resp.raise_for_status()
                deletions_applied = True

            records: list[AttendanceRow] = []
            if upserts:
                resp = self._session.post(
                    self._url,
                    params={"on_conflict": "id", "select": _SELECT_COLUMNS},
                    json=[u.to_dict(meeting_id) for u in upserts],
                    headers=self._headers(caller, prefer="resolution=merge-duplicates,return=representation"),
                    timeout=self._timeout,
                )
                resp.raise_for_status()
                records = [AttendanceRow.from_dict(r) for r in resp.json() or []]
        except requests.RequestException as exc:
            kind = ErrorKind.PARTIAL_APPLY_RISK if deletions_applied else ErrorKind.STORE_FAILURE
            _logger.warning(
                "Attendance save via %s tier failed for meeting %s (%s): %s",
                self.tier.value, meeting_id, kind.value, exc,
            )
            return StoreResult.fail(_error_message(exc), kind)

        return StoreResult.succeed(AppliedBatch(records=tuple(records), deleted_ids=tuple(deletions)))

    def list_for_meeting(
        self,
        meeting_id: str,
        *,
        caller: Optional[CallerContext] = None,
    ) -> StoreResult[list[AttendanceRow]]:
        try:
            resp = self._session.get(
                self._url,
                params={"meeting_id": f"eq.{meeting_id}", "select": _SELECT_COLUMNS},
                headers=self._headers(caller),
                timeout=self._timeout,
            )
            resp.raise_for_status()
            payload: Any = resp.json()
        except requests.RequestException as exc:
            return StoreResult.fail(_error_message(exc), ErrorKind.STORE_FAILURE)
        try:
            if not isinstance(payload or [], list):
                raise ValidationError("Expected a list of attendance rows")
            rows = [AttendanceRow.from_dict(r) for r in payload or []]
        except ValidationError as exc:
            _logger.warning("Unreadable attendance rows for meeting %s via %s tier: %s", meeting_id, self.tier.value, exc)
            return StoreResult.fail(str(exc), ErrorKind.STORE_FAILURE)
        return StoreResult.succeed(rows)


class ServiceRoleAttendanceStore(RestAttendanceStore):
    """Privileged tier: every call is made with the service role key."""

    tier = StoreTier.SERVICE


class CallerScopedAttendanceStore(RestAttendanceStore):
    """Caller-scoped tier: the anon key plus the caller's own session token.

    Row access is limited by the caller's policies. Without a token the
    anon key is used as the bearer.
    """

    tier = StoreTier.CALLER

    def _bearer(self, caller: Optional[CallerContext]) -> str:
        if caller and caller.access_token:
            return caller.access_token
        return self._api_key
