from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from ..common.validators import require_editable_status, require_non_empty
from ..core.enums import ErrorKind
from ..core.exceptions import ValidationError
from .model import AttendanceRow, BatchRequest, BatchResponse, UpsertRow
from .repository import AttendanceStore, CallerContext, StoreResult

_logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Database access is not configured on the server. Set DB_HOST (or DATABASE_URL) "
    "or provide SUPABASE_URL with a service role or anon key."
)


def _new_id() -> str:
    return str(uuid.uuid4())


class AttendanceGateway:
    """Applies one attendance batch for one meeting.

    The store tier is fixed when the gateway is built. Every outcome is
    returned as a ``BatchResponse``; a failed response never carries
    records or deleted ids.
    """

    def __init__(self, store: Optional[AttendanceStore], *, id_factory: Callable[[], str] = _new_id):
        self._store = store
        self._id_factory = id_factory

    @property
    def tier(self):
        return self._store.tier if self._store else None

    def apply_batch(self, request: BatchRequest, *, caller: Optional[CallerContext] = None) -> BatchResponse:
        try:
            meeting_id = require_non_empty(request.meeting_id, "meetingId")
            upserts = self._normalize_upserts(request.upserts)
        except ValidationError as e:
            return BatchResponse.failure(str(e), ErrorKind.VALIDATION)

        # Keep first occurrence order; a repeated id is deleted once.
        deletions = list(dict.fromkeys(request.deletions))

        if not upserts and not deletions:
            return BatchResponse.ok()

        if self._store is None:
            return BatchResponse.failure(NOT_CONFIGURED_MESSAGE, ErrorKind.CONFIGURATION)

        result = self._store.apply(meeting_id, upserts, deletions, caller=caller)
        if not result.ok:
            _logger.error(
                "Attendance batch save failed for meeting %s via %s tier (%s): %s",
                meeting_id, self._store.tier.value, result.error_kind.value, result.error,
            )
            return BatchResponse.failure(
                result.error or "An unexpected error occurred while saving attendance.",
                result.error_kind or ErrorKind.STORE_FAILURE,
            )

        applied = result.value
        _logger.info(
            "Saved attendance for meeting %s: %d upserted, %d deleted",
            meeting_id, len(applied.records), len(applied.deleted_ids),
        )
        return BatchResponse.ok(records=applied.records, deleted_ids=applied.deleted_ids)

    def list_attendance(
        self, meeting_id: str, *, caller: Optional[CallerContext] = None
    ) -> StoreResult[list[AttendanceRow]]:
        try:
            meeting_id = require_non_empty(meeting_id, "meetingId")
        except ValidationError as e:
            return StoreResult.fail(str(e), ErrorKind.VALIDATION)
        if self._store is None:
            return StoreResult.fail(NOT_CONFIGURED_MESSAGE, ErrorKind.CONFIGURATION)
        return self._store.list_for_meeting(meeting_id, caller=caller)

    def _normalize_upserts(self, upserts) -> list[UpsertRow]:
        normalized: list[UpsertRow] = []
        seen = set()
        for row in upserts:
            require_editable_status(row.subject.kind, row.status)
            if row.subject in seen:
                raise ValidationError(f"Duplicate upsert for {row.subject}")
            seen.add(row.subject)
            normalized.append(row if row.id else UpsertRow(id=self._id_factory(), subject=row.subject, status=row.status))
        return normalized
