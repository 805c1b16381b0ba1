from __future__ import annotations

import logging
from typing import Optional, Sequence

import mysql.connector

from ..core.constants import ATTENDANCE_COLUMNS, ATTENDANCE_TABLE
from ..core.enums import AttendanceStatus, ErrorKind, StoreTier, SubjectKind
from ..core.exceptions import RowOwnershipError
from ..database.mysql_base import ConnectionFactory, db_cursor, fetchall, placeholders, transaction
from .model import AttendanceRow, Subject, UpsertRow
from .repository import AppliedBatch, AttendanceStore, CallerContext, StoreResult

_logger = logging.getLogger(__name__)

_SELECT_COLUMNS = ", ".join(ATTENDANCE_COLUMNS)


def _to_row(r: dict) -> AttendanceRow:
    return AttendanceRow(
        id=str(r["id"]),
        subject=Subject.from_columns(r),
        status=AttendanceStatus.from_stored(r["status"]),
    )


class MySQLAttendanceStore(AttendanceStore):
    """Direct transactional tier.

    Deletions and upserts run inside one transaction, so a batch is applied
    completely or not at all.
    """

    tier = StoreTier.DIRECT

    def __init__(self, conn_factory: ConnectionFactory):
        self._conn_factory = conn_factory

    def apply(
        self,
        meeting_id: str,
        upserts: Sequence[UpsertRow],
        deletions: Sequence[str],
        *,
        caller: Optional[CallerContext] = None,
    ) -> StoreResult[AppliedBatch]:
        try:
            with transaction(self._conn_factory) as cur:
                if deletions:
                    cur.execute(
                        f"DELETE FROM {ATTENDANCE_TABLE} WHERE meeting_id=%s AND id IN ({placeholders(deletions)})",
                        (meeting_id, *deletions),
                    )
                records: list[AttendanceRow] = []
                if upserts:
                    self._check_ownership(cur, meeting_id, upserts)
                    cur.executemany(
                        f"""
                        INSERT INTO {ATTENDANCE_TABLE} (id, meeting_id, member_id, guest_id, pipeliner_id, status)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        ON DUPLICATE KEY UPDATE status = VALUES(status)
                        """,
                        [self._insert_params(meeting_id, u) for u in upserts],
                    )
                    records = self._canonical_rows(cur, meeting_id, upserts)
        except (mysql.connector.Error, RowOwnershipError) as exc:
            _logger.warning("Attendance transaction for meeting %s rolled back: %s", meeting_id, exc)
            return StoreResult.fail(str(exc), ErrorKind.TRANSACTION_FAILURE)

        return StoreResult.succeed(AppliedBatch(records=tuple(records), deleted_ids=tuple(deletions)))

    def list_for_meeting(
        self,
        meeting_id: str,
        *,
        caller: Optional[CallerContext] = None,
    ) -> StoreResult[list[AttendanceRow]]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM {ATTENDANCE_TABLE} WHERE meeting_id=%s ORDER BY id",
                    (meeting_id,),
                )
                rows = fetchall(cur)
        except mysql.connector.Error as exc:
            return StoreResult.fail(str(exc), ErrorKind.STORE_FAILURE)
        return StoreResult.succeed([_to_row(r) for r in rows])

    @staticmethod
    def _insert_params(meeting_id: str, row: UpsertRow) -> tuple:
        columns = row.subject.to_columns()
        return (
            row.id,
            meeting_id,
            columns["member_id"],
            columns["guest_id"],
            columns["pipeliner_id"],
            row.status.value,
        )

    def _check_ownership(self, cur, meeting_id: str, upserts: Sequence[UpsertRow]) -> None:
        """Refuse ids that already belong to another meeting or another subject.

        ``ON DUPLICATE KEY UPDATE`` would otherwise rewrite that foreign row.
        """

        by_id = {u.id: u for u in upserts}
        cur.execute(
            f"SELECT id, meeting_id, member_id, guest_id, pipeliner_id FROM {ATTENDANCE_TABLE} "
            f"WHERE id IN ({placeholders(list(by_id))}) FOR UPDATE",
            tuple(by_id),
        )
        for r in fetchall(cur):
            upsert = by_id[str(r["id"])]
            if str(r["meeting_id"]) != meeting_id or Subject.from_columns(r) != upsert.subject:
                raise RowOwnershipError(f"Attendance id {r['id']} belongs to another row, not {upsert.subject}")

    def _canonical_rows(self, cur, meeting_id: str, upserts: Sequence[UpsertRow]) -> list[AttendanceRow]:
        """Read back the post-upsert rows, keyed by subject.

        A subject that already had a row under another id keeps that row (the
        per-meeting unique key wins), so the canonical id may differ from the
        one generated for the insert.
        """

        by_subject: dict[Subject, AttendanceRow] = {}
        for kind in SubjectKind:
            ids = [u.subject.subject_id for u in upserts if u.subject.kind is kind]
            if not ids:
                continue
            cur.execute(
                f"SELECT {_SELECT_COLUMNS} FROM {ATTENDANCE_TABLE} "
                f"WHERE meeting_id=%s AND {kind.column} IN ({placeholders(ids)})",
                (meeting_id, *ids),
            )
            for r in fetchall(cur):
                row = _to_row(r)
                by_subject[row.subject] = row
        missing = [str(u.subject) for u in upserts if u.subject not in by_subject]
        if missing:
            raise RowOwnershipError(f"No attendance row for {', '.join(missing)} after upsert")
        return [by_subject[u.subject] for u in upserts]
