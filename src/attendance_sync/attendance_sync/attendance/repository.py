from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Optional, Protocol, Sequence, TypeVar

from ..core.enums import ErrorKind, StoreTier
from .model import AttendanceRow, UpsertRow

T = TypeVar("T")


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Explicit outcome of a store call.

    Expected failures (driver errors, HTTP errors) come back as a failed
    result with an ``ErrorKind``; only unexpected faults are raised.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def succeed(cls, value: T) -> "StoreResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind) -> "StoreResult[T]":
        return cls(ok=False, error=error, error_kind=kind)


@dataclass(frozen=True)
class AppliedBatch:
    records: Sequence[AttendanceRow] = field(default_factory=tuple)
    deleted_ids: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class CallerContext:
    """Identity of the HTTP caller, used only by the caller-scoped tier."""

    access_token: Optional[str] = None


class AttendanceStore(Protocol):
    tier: StoreTier

    def apply(
        self,
        meeting_id: str,
        upserts: Sequence[UpsertRow],
        deletions: Sequence[str],
        *,
        caller: Optional[CallerContext] = None,
    ) -> StoreResult[AppliedBatch]:
        """Delete ``deletions`` then insert-or-update ``upserts`` (every row carries an id)."""

        raise NotImplementedError

    def list_for_meeting(
        self,
        meeting_id: str,
        *,
        caller: Optional[CallerContext] = None,
    ) -> StoreResult[list[AttendanceRow]]:
        raise NotImplementedError
