"""Coalescing single-shot timers used for debouncing."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class CoalescingTimer(QObject):
    """
    Single-shot timer with cancel-and-reschedule semantics.

    Scheduling while a callback is pending restarts the quiet window and
    replaces the callback, so a burst of triggers fires exactly once.
    """

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)
        self._callback: Optional[Callable[[], None]] = None

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        """
        Schedule a callback, replacing any pending one.

        Args:
            delay_ms: Quiet period in milliseconds
            callback: Function to call once the period elapses
        """
        self._callback = callback
        self._timer.start(delay_ms)

    def cancel_pending(self) -> None:
        """Drop the pending callback, if any."""
        self._timer.stop()
        self._callback = None

    def _fire(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()
