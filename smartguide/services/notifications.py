"""Local notification contract.

The core only decides when to notify and with what title/body; the host
platform decides how it is rendered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, title: str, body: str) -> None: ...


class LoggingNotifier:
    """Notifier for headless runs: writes notifications to the log."""

    def notify(self, title: str, body: str) -> None:
        logger.info("NOTIFY %s: %s", title, body)


@dataclass
class RecordingNotifier:
    """Keeps every notification in memory."""

    sent: list[tuple[str, str]] = field(default_factory=list)

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))
