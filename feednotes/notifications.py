"""
Notification sink - fire-and-forget status messages for the user.

Update runs report start, completion and "nothing to do" here; errors
only go to the log.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, message: str) -> None:  # pragma: no cover - interface
        ...


@dataclass
class Notice:
    """A message shown to the user."""
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class LogNotifier:
    """Writes notices to the log."""

    def notify(self, message: str) -> None:
        logger.info(message)


class MemoryNotifier:
    """Keeps the most recent notices, e.g. for the status endpoint."""

    def __init__(self, max_notices: int = 50):
        self.max_notices = max_notices
        self.notices: list[Notice] = []

    def notify(self, message: str) -> None:
        logger.info(message)
        self.notices.append(Notice(message))
        del self.notices[:-self.max_notices]

    @property
    def messages(self) -> list[str]:
        return [n.message for n in self.notices]
