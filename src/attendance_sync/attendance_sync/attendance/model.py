from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import require_list, require_status
from ..core.enums import AttendanceStatus, ErrorKind, SubjectKind
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Subject:
    """Đối tượng điểm danh: thành viên, khách mời hoặc pipeliner."""

    kind: SubjectKind
    subject_id: str

    @classmethod
    def member(cls, subject_id: str) -> "Subject":
        return cls(SubjectKind.MEMBER, subject_id)

    @classmethod
    def guest(cls, subject_id: str) -> "Subject":
        return cls(SubjectKind.GUEST, subject_id)

    @classmethod
    def pipeliner(cls, subject_id: str) -> "Subject":
        return cls(SubjectKind.PIPELINER, subject_id)

    @classmethod
    def from_columns(cls, row: Mapping[str, Any]) -> "Subject":
        """Build a subject from a row where exactly one of the foreign keys is set."""

        found = [(kind, row.get(kind.column)) for kind in SubjectKind if row.get(kind.column)]
        if len(found) != 1:
            raise ValidationError("Exactly one of member_id, guest_id or pipeliner_id must be set")
        kind, subject_id = found[0]
        return cls(kind, str(subject_id))

    def to_columns(self) -> dict[str, Optional[str]]:
        return {kind.column: (self.subject_id if kind is self.kind else None) for kind in SubjectKind}

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.subject_id}"


@dataclass(frozen=True)
class MeetingContext:
    meeting_id: str
    meeting_type: Optional[str] = None


@dataclass
class LedgerEntry:
    subject: Subject
    attendance_id: Optional[str] = None
    baseline: AttendanceStatus = AttendanceStatus.UNSET
    current: AttendanceStatus = AttendanceStatus.UNSET

    @property
    def is_dirty(self) -> bool:
        return self.current != self.baseline


@dataclass(frozen=True)
class AttendanceRow:
    """A persisted attendance row as returned by the read API."""

    id: str
    subject: Subject
    status: AttendanceStatus

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AttendanceRow":
        if not isinstance(payload, Mapping) or not payload.get("id"):
            raise ValidationError("Each attendance row must be an object with an id")
        return cls(
            id=str(payload["id"]),
            subject=Subject.from_columns(payload),
            status=require_status(payload.get("status")),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, **self.subject.to_columns(), "status": self.status.value}


# Upsert results carry the same shape as a persisted row.
UpsertResultRow = AttendanceRow


@dataclass(frozen=True)
class UpsertRow:
    id: Optional[str]
    subject: Subject
    status: AttendanceStatus

    @classmethod
    def from_dict(cls, payload: Any) -> "UpsertRow":
        if not isinstance(payload, Mapping):
            raise ValidationError("Each upsert must be an object")
        status = require_status(payload.get("status"))
        if status is AttendanceStatus.UNSET:
            raise ValidationError("An unset status is persisted as a deletion, not an upsert")
        return cls(id=payload.get("id") or None, subject=Subject.from_columns(payload), status=status)

    def to_dict(self, meeting_id: Optional[str] = None) -> dict:
        data: dict[str, Any] = {"id": self.id}
        if meeting_id is not None:
            data["meeting_id"] = meeting_id
        data.update(self.subject.to_columns())
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class BatchRequest:
    meeting_id: str
    upserts: Sequence[UpsertRow] = ()
    deletions: Sequence[str] = ()
    meeting_type: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.upserts and not self.deletions

    @classmethod
    def from_payload(cls, payload: Any) -> "BatchRequest":
        """Parse the JSON body of ``POST /attendance/save``.

        Missing ``meetingId`` is not rejected here; the gateway reports it so
        that every entry point shares one validation path.
        """

        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be a JSON object")
        deletions = [str(d) for d in require_list(payload.get("deletions"), "deletions") if d]
        upserts = [UpsertRow.from_dict(u) for u in require_list(payload.get("upserts"), "upserts")]
        meeting_id = payload.get("meetingId")
        return cls(
            meeting_id=meeting_id.strip() if isinstance(meeting_id, str) else "",
            upserts=tuple(upserts),
            deletions=tuple(deletions),
            meeting_type=payload.get("meetingType"),
        )

    def to_payload(self) -> dict:
        return {
            "meetingId": self.meeting_id,
            "meetingType": self.meeting_type,
            "upserts": [u.to_dict(self.meeting_id) for u in self.upserts],
            "deletions": list(self.deletions),
        }


@dataclass(frozen=True)
class BatchResponse:
    success: bool
    records: Sequence[UpsertResultRow] = field(default_factory=tuple)
    deleted_ids: Sequence[str] = field(default_factory=tuple)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, records: Sequence[UpsertResultRow] = (), deleted_ids: Sequence[str] = ()) -> "BatchResponse":
        return cls(success=True, records=tuple(records), deleted_ids=tuple(deleted_ids))

    @classmethod
    def failure(cls, error: str, kind: ErrorKind) -> "BatchResponse":
        return cls(success=False, error=error, error_kind=kind)

    def to_dict(self) -> dict:
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "errorKind": self.error_kind.value if self.error_kind else None,
            }
        return {
            "success": True,
            "records": [r.to_dict() for r in self.records],
            "deletedIds": list(self.deleted_ids),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BatchResponse":
        if not payload.get("success"):
            kind = payload.get("errorKind")
            return cls.failure(
                str(payload.get("error") or "Attendance save failed."),
                ErrorKind(kind) if kind in ErrorKind._value2member_map_ else ErrorKind.STORE_FAILURE,
            )
        return cls.ok(
            records=[AttendanceRow.from_dict(r) for r in payload.get("records") or []],
            deleted_ids=[str(d) for d in payload.get("deletedIds") or []],
        )
