from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from ..attendance.model import AttendanceRow, LedgerEntry, MeetingContext, Subject
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class BaselineSnapshot:
    attendance_id: Optional[str]
    status: AttendanceStatus


@dataclass(frozen=True)
class AttendanceSummary:
    present: int = 0
    apology: int = 0
    absent: int = 0


class AttendanceLedger:
    """Baseline and current attendance for every subject of one meeting.

    ``baseline`` is the last value known to match the backing store,
    ``current`` is the in-progress edit. The ledger is the only holder of
    both; there is no shadow copy elsewhere.
    """

    def __init__(self, meeting: Optional[MeetingContext] = None):
        self._meeting = meeting
        self._entries: dict[Subject, LedgerEntry] = {}

    @property
    def meeting(self) -> Optional[MeetingContext]:
        return self._meeting

    def reset(self, meeting: Optional[MeetingContext]) -> None:
        """Drop every entry, edits included, and bind to ``meeting``."""
        self._meeting = meeting
        self._entries = {}

    def get(self, subject: Subject) -> LedgerEntry:
        entry = self._entries.get(subject)
        if entry is None:
            entry = LedgerEntry(subject=subject)
            self._entries[subject] = entry
        return entry

    def register(self, subjects: Iterable[Subject]) -> None:
        for subject in subjects:
            self.get(subject)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def set_current(self, subject: Subject, status: AttendanceStatus) -> bool:
        """Record an edit. Returns False when the value did not change."""
        entry = self.get(subject)
        if entry.current == status:
            return False
        entry.current = status
        return True

    def is_dirty(self, subject: Subject) -> bool:
        entry = self._entries.get(subject)
        return bool(entry and entry.is_dirty)

    def dirty_entries(self) -> list[LedgerEntry]:
        return [e for e in self._entries.values() if e.is_dirty]

    def has_dirty(self) -> bool:
        return any(e.is_dirty for e in self._entries.values())

    def find_by_attendance_id(self, attendance_id: str) -> Optional[LedgerEntry]:
        for entry in self._entries.values():
            if entry.attendance_id == attendance_id:
                return entry
        return None

    def snapshot_baseline(self) -> Mapping[Subject, BaselineSnapshot]:
        return MappingProxyType(
            {s: BaselineSnapshot(e.attendance_id, e.baseline) for s, e in self._entries.items()}
        )

    def load_baseline(self, rows: Iterable[AttendanceRow], *, silent: bool = False) -> None:
        """Hydrate from persisted rows.

        Covered subjects get ``baseline = current = row.status``; with
        ``silent`` an unsaved edit on a covered subject is kept. Subjects
        already in the ledger but absent from ``rows`` have no row any more:
        their baseline becomes ``unset`` and an unsaved edit survives.
        """

        covered: dict[Subject, AttendanceRow] = {row.subject: row for row in rows}

        for subject, entry in self._entries.items():
            if subject in covered:
                continue
            had_edit = entry.is_dirty
            entry.attendance_id = None
            entry.baseline = AttendanceStatus.UNSET
            if not had_edit:
                entry.current = AttendanceStatus.UNSET

        for subject, row in covered.items():
            entry = self.get(subject)
            keep_edit = silent and entry.is_dirty
            entry.attendance_id = row.id
            entry.baseline = row.status
            if not keep_edit:
                entry.current = row.status

    def summary(self) -> AttendanceSummary:
        counts = {AttendanceStatus.PRESENT: 0, AttendanceStatus.APOLOGY: 0, AttendanceStatus.ABSENT: 0}
        for entry in self._entries.values():
            if entry.current in counts:
                counts[entry.current] += 1
        return AttendanceSummary(
            present=counts[AttendanceStatus.PRESENT],
            apology=counts[AttendanceStatus.APOLOGY],
            absent=counts[AttendanceStatus.ABSENT],
        )
