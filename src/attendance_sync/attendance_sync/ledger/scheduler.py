from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from ..core.constants import AUTOSAVE_DELAY_SECONDS
from ..core.enums import SchedulerState

_logger = logging.getLogger(__name__)


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _thread_timer(delay: float, fn: Callable[[], None]) -> Timer:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    return timer


class AutosaveScheduler:
    """Debounced autosave: IDLE -> ARMED -> SAVING -> IDLE/ARMED.

    Every edit pushes the deadline out by ``delay``; the save only fires
    after a quiet period. While SAVING, edits are remembered and the timer is
    re-armed when the save finishes, so nothing is dropped. At most one save
    is in flight; that is enforced by the SAVING state, not by a lock.
    """

    def __init__(
        self,
        on_fire: Callable[[], None],
        *,
        has_pending: Callable[[], bool],
        delay: float = AUTOSAVE_DELAY_SECONDS,
        timer_factory: TimerFactory = _thread_timer,
        lock: Optional[threading.RLock] = None,
    ):
        self._on_fire = on_fire
        self._has_pending = has_pending
        self._delay = float(delay)
        self._timer_factory = timer_factory
        self._timer: Optional[Timer] = None
        self._state = SchedulerState.IDLE
        self._edited_while_saving = False
        self._generation = 0
        self._lock = lock or threading.RLock()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_saving(self) -> bool:
        return self._state is SchedulerState.SAVING

    def notify_edit(self) -> None:
        if self._state is SchedulerState.SAVING:
            self._edited_while_saving = True
            return
        self._arm()

    def begin_save(self) -> bool:
        """Enter SAVING. Returns False if a save is already in flight."""
        if self._state is SchedulerState.SAVING:
            return False
        self._cancel_timer()
        self._state = SchedulerState.SAVING
        self._edited_while_saving = False
        return True

    def finish_save(self, *, succeeded: bool, automatic: bool) -> None:
        retry = automatic and not succeeded
        self._state = SchedulerState.IDLE
        if self._has_pending() and (self._edited_while_saving or retry):
            self._arm()
        self._edited_while_saving = False

    def settle(self) -> None:
        """Return to IDLE without saving (nothing to send)."""
        if self._state is not SchedulerState.SAVING:
            self._cancel_timer()
            self._state = SchedulerState.IDLE

    def cancel(self) -> None:
        self._cancel_timer()
        if self._state is SchedulerState.ARMED:
            self._state = SchedulerState.IDLE

    def _arm(self) -> None:
        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        timer = self._timer_factory(self._delay, lambda: self._fire(generation))
        self._timer = timer
        self._state = SchedulerState.ARMED
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        # A cancelled timer can still call in after a re-arm; only the latest counts.
        with self._lock:
            if self._state is not SchedulerState.ARMED or generation != self._generation:
                return
            self._timer = None
            if not self._has_pending():
                self._state = SchedulerState.IDLE
                return
        _logger.debug("Autosave timer fired")
        self._on_fire()
