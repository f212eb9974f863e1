"""
Clock and sequence assignment for the operations queue.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from offline_sync.core.timestamps import to_file_time

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current aware UTC time."""
    return datetime.now(timezone.utc)


class SequenceGenerator:
    """
    Hands out strictly increasing operation sequence values.

    Values are the clock reading in file-time ticks, bumped to ``last + 1``
    whenever the clock has not advanced (same tick, or the clock moved
    backwards). One generator is shared by every queue and table of a store so
    operations created through any of them stay totally ordered.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now
        self._last: Optional[int] = None

    @property
    def is_seeded(self) -> bool:
        return self._last is not None

    @property
    def last(self) -> Optional[int]:
        return self._last

    def seed(self, persisted_max: Optional[int]) -> None:
        """
        Make sure future values sort after everything already persisted.

        Safe to call more than once; the generator never moves backwards.
        """
        floor = persisted_max or 0
        if self._last is None or floor > self._last:
            logger.debug(f"Sequence generator seeded at {floor}")
            self._last = floor

    def next(self) -> int:
        """Return the next sequence value."""
        candidate = to_file_time(self.clock())
        if self._last is not None and candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate
