from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence, Union

from ..attendance.model import BatchRequest, BatchResponse, MeetingContext, Subject
from ..common.validators import require_editable_status, require_status
from ..core.constants import AUTOSAVE_DELAY_SECONDS
from ..core.enums import AttendanceStatus, ErrorKind
from ..core.exceptions import NetworkFailure, ValidationError
from .diff import compute_diff
from .ledger import AttendanceLedger, AttendanceSummary
from .merge import reconcile
from .scheduler import AutosaveScheduler, TimerFactory
from .transport import AttendanceTransport

_logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]

_LOG_LEVELS = {"info": logging.INFO, "success": logging.INFO, "error": logging.ERROR}


def _log_notice(level: str, message: str) -> None:
    _logger.log(_LOG_LEVELS.get(level, logging.INFO), message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttendanceSession:
    """Attendance editing for one meeting at a time.

    Edits land in the ledger and (re)arm the autosave timer; ``save`` sends
    the current diff as one batch and folds the response back in. Ledger
    and scheduler state only change under ``self._lock``; the network call
    runs outside it so edits keep flowing while a save is in flight.
    """

    def __init__(
        self,
        transport: AttendanceTransport,
        *,
        delay: float = AUTOSAVE_DELAY_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
        notifier: Notifier = _log_notice,
        clock: Callable[[], datetime] = _utcnow,
        name_resolver: Callable[[Subject], str] = str,
    ):
        self._lock = threading.RLock()
        self._transport = transport
        self._ledger = AttendanceLedger()
        scheduler_kwargs = {"timer_factory": timer_factory} if timer_factory else {}
        self._scheduler = AutosaveScheduler(
            self._autosave,
            has_pending=self._ledger.has_dirty,
            delay=delay,
            lock=self._lock,
            **scheduler_kwargs,
        )
        self._notify = notifier
        self._clock = clock
        self._name_of = name_resolver

        self._needs_refresh = False
        self._last_saved_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.error_subjects: Sequence[str] = ()

    @classmethod
    def from_settings(cls, transport: AttendanceTransport, settings, **kwargs) -> "AttendanceSession":
        delay = float(getattr(settings, "AUTOSAVE_DELAY_SECONDS", AUTOSAVE_DELAY_SECONDS))
        return cls(transport, delay=delay, **kwargs)

    @property
    def ledger(self) -> AttendanceLedger:
        return self._ledger

    @property
    def scheduler(self) -> AutosaveScheduler:
        return self._scheduler

    @property
    def meeting(self) -> Optional[MeetingContext]:
        return self._ledger.meeting

    # --- meeting lifecycle -------------------------------------------------

    def set_meeting(self, meeting: Optional[MeetingContext], *, load: bool = True) -> None:
        """Switch meetings. The ledger is cleared, never merged."""
        with self._lock:
            self._scheduler.cancel()
            self._ledger.reset(meeting)
            self._needs_refresh = False
            self._last_saved_at = None
            self.last_error = None
            self.error_subjects = ()
        if meeting is not None and load:
            self.refresh(silent=False)

    def register_subjects(self, subjects: Iterable[Subject]) -> None:
        with self._lock:
            self._ledger.register(subjects)

    def refresh(self, *, silent: bool = True) -> bool:
        """Reload the baseline from the read API. Returns False on failure."""
        with self._lock:
            meeting = self._ledger.meeting
        if meeting is None:
            return False

        try:
            rows = self._transport.fetch_rows(meeting.meeting_id)
        except NetworkFailure as exc:
            with self._lock:
                self.last_error = str(exc)
            self._notify("error", str(exc))
            return False

        with self._lock:
            if self._ledger.meeting != meeting:
                return False
            self._ledger.load_baseline(rows, silent=silent)
            self._needs_refresh = False
        return True

    # --- edits -----------------------------------------------------------

    def toggle(self, subject: Subject, status: Union[AttendanceStatus, str]) -> None:
        status = require_editable_status(subject.kind, require_status(status))
        with self._lock:
            self._require_meeting()
            if self._ledger.set_current(subject, status):
                self._scheduler.notify_edit()

    def mark_all_present(self, subjects: Iterable[Subject]) -> None:
        with self._lock:
            self._require_meeting()
            changed = False
            for subject in subjects:
                changed = self._ledger.set_current(subject, AttendanceStatus.PRESENT) or changed
            if changed:
                self._scheduler.notify_edit()

    def _require_meeting(self) -> None:
        if self._ledger.meeting is None:
            raise ValidationError("Select a meeting before recording attendance")

    # --- queries ---------------------------------------------------------

    def has_unsaved_changes(self) -> bool:
        with self._lock:
            return self._ledger.has_dirty()

    def last_saved_at(self) -> Optional[datetime]:
        with self._lock:
            return self._last_saved_at

    def summary(self) -> AttendanceSummary:
        with self._lock:
            return self._ledger.summary()

    # --- saving ----------------------------------------------------------

    def save(self, manual: bool = True) -> Optional[BatchResponse]:
        """Send the pending diff as one batch.

        Returns None when nothing was sent: no meeting, a save already in
        flight, or no changes. Failures come back as a failed response and
        are also reported through the notifier.
        """

        automatic = not manual
        with self._lock:
            meeting = self._ledger.meeting
            if meeting is None or self._scheduler.is_saving:
                return None
            needs_refresh = self._needs_refresh

        # A failed save may have left the store partly applied; re-read it first.
        if needs_refresh and not self.refresh(silent=True):
            with self._lock:
                if automatic and self._ledger.has_dirty():
                    self._scheduler.notify_edit()
            return BatchResponse.failure(self.last_error or "Unable to reload attendance.", ErrorKind.NETWORK)

        with self._lock:
            if self._ledger.meeting != meeting:
                return None
            diff = compute_diff(self._ledger)
            if diff.is_empty:
                self._scheduler.settle()
                if manual:
                    self._notify("info", "No attendance changes to save.")
                return None
            if not self._scheduler.begin_save():
                return None
            sent = {subject: self._ledger.get(subject).current for subject in diff.touched}
            summary = self._ledger.summary()
            request = BatchRequest(
                meeting_id=meeting.meeting_id,
                upserts=diff.upserts,
                deletions=diff.deletions,
                meeting_type=meeting.meeting_type,
            )

        response: Optional[BatchResponse] = None
        try:
            try:
                response = self._transport.send(request)
            except NetworkFailure as exc:
                response = BatchResponse.failure(str(exc), ErrorKind.NETWORK)
        finally:
            with self._lock:
                succeeded = bool(response and response.success)
                if response is not None:
                    self._finish(meeting, response, sent, diff.touched, summary, manual)
                self._scheduler.finish_save(succeeded=succeeded, automatic=automatic)
        return response

    def _finish(self, meeting, response, sent, touched, summary, manual) -> None:
        if self._ledger.meeting != meeting:
            _logger.info("Discarding save response for meeting %s after meeting switch", meeting.meeting_id)
            return

        if response.success:
            reconcile(self._ledger, response, sent)
            self._last_saved_at = self._clock()
            self.last_error = None
            self.error_subjects = ()
            if manual:
                self._notify(
                    "success",
                    f"Recorded: {summary.present} present, {summary.apology} apologies, {summary.absent} absent",
                )
            return

        self._needs_refresh = True
        self.last_error = response.error or "Unable to save attendance changes."
        self.error_subjects = tuple(self._name_of(s) for s in touched)
        self._notify("error", self.last_error)

    def _autosave(self) -> None:
        try:
            self.save(manual=False)
        except Exception:
            _logger.exception("Automatic attendance save crashed")

    def close(self) -> None:
        with self._lock:
            self._scheduler.cancel()
