from __future__ import annotations

from typing import Any

from ..core.enums import BOOLEAN_STATUSES, AttendanceStatus, SubjectKind
from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required.")
    return value.strip()


def require_status(value: Any, field_name: str = "status") -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise ValidationError(f"{field_name} has an invalid value: {value!r}")


def require_editable_status(kind: SubjectKind, status: AttendanceStatus) -> AttendanceStatus:
    """Guests and pipeliners only record whether they attended."""

    if kind is not SubjectKind.MEMBER and status not in BOOLEAN_STATUSES:
        raise ValidationError(f"A {kind.value} can only be marked present or cleared")
    return status


def require_list(value: Any, field_name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list.")
    return value
