from __future__ import annotations

from enum import Enum


class SubjectKind(str, Enum):
    """Loại đối tượng được điểm danh trong một buổi họp."""

    MEMBER = "member"
    GUEST = "guest"
    PIPELINER = "pipeliner"

    @property
    def column(self) -> str:
        return f"{self.value}_id"


class AttendanceStatus(str, Enum):
    """Attendance value held by the ledger.

    UNSET means "no decision recorded" and is never written to the store:
    persisting it deletes the row.
    """

    PRESENT = "present"
    APOLOGY = "apology"
    ABSENT = "absent"
    UNSET = "unset"

    @classmethod
    def from_stored(cls, value: str | None) -> "AttendanceStatus":
        if value is None or value == "":
            return cls.UNSET
        return cls(value)


class StoreTier(str, Enum):
    """Backing-store access strategies, in descending order of preference."""

    DIRECT = "direct"
    SERVICE = "service"
    CALLER = "caller"


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"
    PARTIAL_APPLY_RISK = "PARTIAL_APPLY_RISK"
    STORE_FAILURE = "STORE_FAILURE"
    NETWORK = "NETWORK"
    CONFIGURATION = "CONFIGURATION"


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    ARMED = "ARMED"
    SAVING = "SAVING"


# Statuses a guest or pipeliner can be edited to (attended / not attended).
BOOLEAN_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.UNSET})
