"""Lifecycle of the single outstanding SOS alert."""

from __future__ import annotations

import enum
import logging
from typing import Callable

from smartguide.core.errors import StaleAlertError
from smartguide.schemas.alert import AlertEvent, AlertStatus

logger = logging.getLogger(__name__)


class AlertPhase(str, enum.Enum):
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"


class AlertStateMachine:
    """Idle / Active(event) machine keyed by the alert's raised_at.

    last_raised_at survives clear(), so a replayed copy of an already
    cleared alert can never reopen it; only a strictly newer raised_at can.
    """

    def __init__(self) -> None:
        self._current: AlertEvent | None = None
        self._last_event: AlertEvent | None = None
        self._last_raised_at: float | None = None
        self._raised_listeners: list[Callable[[AlertEvent], None]] = []
        self._cleared_listeners: list[Callable[[AlertEvent], None]] = []

    @property
    def state(self) -> AlertPhase:
        return AlertPhase.ACTIVE if self._current is not None else AlertPhase.IDLE

    @property
    def is_active(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> AlertEvent | None:
        return self._current

    @property
    def last_event(self) -> AlertEvent | None:
        """Most recent alert, including one that has been cleared."""
        return self._last_event

    @property
    def last_raised_at(self) -> float | None:
        return self._last_raised_at

    def on_raised(self, listener: Callable[[AlertEvent], None]) -> None:
        self._raised_listeners.append(listener)

    def on_cleared(self, listener: Callable[[AlertEvent], None]) -> None:
        self._cleared_listeners.append(listener)

    def is_newer(self, raised_at: float) -> bool:
        return self._last_raised_at is None or raised_at > self._last_raised_at

    def raise_alert(self, event: AlertEvent) -> bool:
        """Accept event if it is newer than anything seen. Returns True on a transition."""
        if not self.is_newer(event.raised_at):
            logger.debug("%s", StaleAlertError(event.raised_at, self._last_raised_at))
            return False

        if event.status is not AlertStatus.ACTIVE:
            event = event.model_copy(update={"status": AlertStatus.ACTIVE})
        self._last_raised_at = event.raised_at
        self._current = event
        self._last_event = event
        logger.info("SOS alert active (raised_at=%s)", event.raised_at)
        for listener in self._raised_listeners:
            listener(event)
        return True

    def annotate(self, raised_at: float, address: str) -> bool:
        """Attach a resolved address to the active alert if it is still raised_at."""
        if self._current is None or self._current.raised_at != raised_at:
            return False
        self._current = self._current.model_copy(update={"address": address})
        self._last_event = self._current
        return True

    def clear(self) -> bool:
        """Drop the active alert. Returns False if already idle."""
        if self._current is None:
            return False

        cleared = self._current.model_copy(update={"status": AlertStatus.CLEARED})
        self._current = None
        self._last_event = cleared
        logger.info("SOS alert cleared (raised_at=%s)", cleared.raised_at)
        for listener in self._cleared_listeners:
            listener(cleared)
        return True
