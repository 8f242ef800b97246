"""Self-expiring user notifications driven by the asyncio event loop."""

import asyncio
import itertools
import logging
from collections import deque
from typing import Callable, Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Kind = Literal["info", "success", "error"]

HISTORY_SIZE = 100


class Notification(BaseModel):
    """One toast-style message."""

    id: int
    message: str
    kind: Kind = "info"


class NotificationCenter:
    """Holds the visible notifications; each one removes itself after ``delay`` seconds.

    ``history`` keeps only the most recent ``history_size`` entries, while
    ``error_count`` counts every error pushed over the center's lifetime.
    """

    def __init__(
        self,
        delay: float = 3.0,
        listener: Optional[Callable[[Notification], None]] = None,
        history_size: int = HISTORY_SIZE,
    ):
        self.delay = delay
        self.listener = listener
        self._active: dict[int, Notification] = {}
        self._ids = itertools.count(1)
        self.history: deque[Notification] = deque(maxlen=history_size)
        self.error_count = 0

    @property
    def active(self) -> list[Notification]:
        return list(self._active.values())

    def push(self, message: str, kind: Kind = "info") -> Notification:
        note = Notification(id=next(self._ids), message=message, kind=kind)
        self._active[note.id] = note
        self.history.append(note)
        if kind == "error":
            self.error_count += 1

        logger.debug("Notification %d [%s]: %s", note.id, kind, message)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside a loop there is no timer to expire it; keep it visible.
            logger.debug("No running loop; notification %d will not expire", note.id)
        else:
            loop.call_later(self.delay, self._expire, note.id)

        if self.listener is not None:
            self.listener(note)
        return note

    def _expire(self, note_id: int) -> None:
        self._active.pop(note_id, None)

    def errors(self) -> list[Notification]:
        """Errors still held in ``history``, expired or not."""
        return [n for n in self.history if n.kind == "error"]
