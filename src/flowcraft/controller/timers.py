"""
Cancellable Timers & Generation Counters
========================================
Small primitives the synchronization controller is built on.

Generation:
    A monotonic counter. ``advance()`` issues a new identity, ``is_current()``
    tells whether an identity is still the latest one. Used for render
    sessions and for the debounce timer.

DebounceTimer:
    A single-shot QTimer wrapped in an explicit arm/cancel/fire interface.
    Re-arming replaces the pending shot entirely, and every shot carries the
    generation it was armed with, so a timeout that was already queued when
    the timer got re-armed or cancelled is ignored.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class Generation:
    def __init__(self) -> None:
        self._value: int = 0

    @property
    def current(self) -> int:
        return self._value

    def advance(self) -> int:
        """Issue and return a fresh identity."""
        self._value += 1
        return self._value

    def is_current(self, value: int) -> bool:
        return value == self._value


class DebounceTimer(QObject):
    """
    Quiet-period timer.

    ``callback`` receives the generation the shot was armed with; it is only
    called for the most recently armed, not cancelled, shot.
    """

    def __init__(self, interval_ms: int, callback: Callable[[int], None], parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._callback = callback
        self._generation = Generation()
        self._armed: Optional[int] = None

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)

    @property
    def interval(self) -> int:
        return self._timer.interval()

    @property
    def is_armed(self) -> bool:
        return self._armed is not None

    @property
    def generation(self) -> int:
        return self._generation.current

    def arm(self) -> int:
        """(Re)start the quiet period. Any pending shot is superseded."""
        self._armed = self._generation.advance()
        self._timer.start()
        return self._armed

    def cancel(self) -> None:
        if self._armed is None:
            return
        self._timer.stop()
        self._generation.advance()
        self._armed = None

    def fire(self) -> bool:
        """
        Elapse the pending quiet period now.

        Returns False if nothing was armed.
        """
        if self._armed is None:
            return False
        self._timer.stop()
        generation = self._armed
        self._armed = None
        self._callback(generation)
        return True

    def claim(self, generation: int) -> bool:
        """
        Accept a shot of ``generation`` exactly once.

        Returns False for a superseded or already claimed shot. An accepted
        shot disarms the timer, so the pending timeout cannot fire again.
        """
        if not self._generation.is_current(generation):
            return False
        self._timer.stop()
        self._armed = None
        self._generation.advance()
        return True

    def _on_timeout(self) -> None:
        if self._armed is None or not self._generation.is_current(self._armed):
            logger.debug("Ignoring stale debounce timeout.")
            return
        self.fire()
