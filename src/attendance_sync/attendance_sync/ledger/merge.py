from __future__ import annotations

from typing import Mapping

from ..attendance.model import BatchResponse, Subject
from ..core.enums import AttendanceStatus
from .ledger import AttendanceLedger


def reconcile(ledger: AttendanceLedger, response: BatchResponse, sent: Mapping[Subject, AttendanceStatus]) -> None:
    """Fold a successful batch response back into the ledger.

    ``sent`` holds the ``current`` value of every subject at the moment the
    batch was built. Baseline and row id always follow the server; ``current``
    only does when it still equals what was sent, so an edit made while the
    save was in flight stays dirty for the next cycle. Subjects that are not
    in the response are left alone.
    """

    if not response.success:
        return

    for record in response.records:
        entry = ledger.get(record.subject)
        unchanged = entry.current == sent.get(record.subject, entry.current)
        entry.attendance_id = record.id
        entry.baseline = record.status
        if unchanged:
            entry.current = record.status

    for attendance_id in response.deleted_ids:
        entry = ledger.find_by_attendance_id(attendance_id)
        if entry is None:
            continue
        unchanged = entry.current == sent.get(entry.subject, AttendanceStatus.UNSET)
        entry.attendance_id = None
        entry.baseline = AttendanceStatus.UNSET
        if unchanged:
            entry.current = AttendanceStatus.UNSET
