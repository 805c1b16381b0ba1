from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..attendance.model import Subject, UpsertRow
from ..core.enums import AttendanceStatus
from .ledger import AttendanceLedger


@dataclass(frozen=True)
class AttendanceDiff:
    upserts: Sequence[UpsertRow] = field(default_factory=tuple)
    deletions: Sequence[str] = field(default_factory=tuple)
    # Subjects that changed, for error attribution only.
    touched: Sequence[Subject] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.upserts and not self.deletions


def compute_diff(ledger: AttendanceLedger) -> AttendanceDiff:
    """Minimal upserts and deletions that bring the store in line with ``current``.

    Clean entries are skipped. A dirty ``unset`` entry without a row id has
    nothing to delete but is still reported as touched.
    """

    upserts: list[UpsertRow] = []
    deletions: list[str] = []
    touched: list[Subject] = []

    for entry in ledger.dirty_entries():
        if entry.current is not AttendanceStatus.UNSET:
            upserts.append(UpsertRow(id=entry.attendance_id, subject=entry.subject, status=entry.current))
        elif entry.attendance_id is not None:
            deletions.append(entry.attendance_id)
        touched.append(entry.subject)

    return AttendanceDiff(upserts=tuple(upserts), deletions=tuple(deletions), touched=tuple(touched))
