"""Cooldown gate for repeated deadline scans.

Best effort and single-process: it only avoids redundant scans when triggers arrive in
quick succession. Duplicate notifications are prevented by the notification store.
"""

import math
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from taskcycle.models.constants import DEADLINE_CHECK_COOLDOWN
from taskcycle.models.results import ThrottleStatus
from taskcycle.recurrence.calendar_math import utc_now


class InvocationThrottle:
    """Allows one run per window unless forced."""

    def __init__(
        self,
        window: timedelta = DEADLINE_CHECK_COOLDOWN,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.window = window
        self.clock = clock
        self.last_run: Optional[datetime] = None
        self._lock = threading.Lock()

    def should_run(self, force: bool = False) -> bool:
        """Return True if a scan may start now, recording the run before returning.

        The timestamp is taken before the scan begins so overlapping triggers see the
        gate closed even while the first scan is still running.
        """
        with self._lock:
            now = self.clock()
            if not force and self.last_run is not None and now - self.last_run < self.window:
                return False
            self.last_run = now
            return True

    def remaining(self) -> timedelta:
        """Time until the next unforced run is allowed."""
        with self._lock:
            if self.last_run is None:
                return timedelta(0)
            return max(timedelta(0), self.last_run + self.window - self.clock())

    def status(self) -> ThrottleStatus:
        remaining = self.remaining()
        last_run = self.last_run
        return ThrottleStatus(
            last_run=last_run,
            next_check_available=last_run + self.window if last_run else None,
            cooldown_active=remaining > timedelta(0),
            remaining_seconds=math.ceil(remaining.total_seconds()),
        )

    def reset(self) -> None:
        with self._lock:
            self.last_run = None
