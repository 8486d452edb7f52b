"""Constants for taskcycle.

This module centralizes all magic numbers and default values used throughout the engine.
Values that operators may want to tune are read from the environment.
"""

import os
from datetime import timedelta
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_offsets(raw: str) -> Tuple[int, ...]:
    offsets = sorted({int(part) for part in raw.split(",") if part.strip()})
    if not offsets or any(o <= 0 for o in offsets):
        raise ValueError(f"UPCOMING_DEADLINE_OFFSETS must list positive day counts, got {raw!r}")
    return tuple(offsets)


# Calendar
# "Today" is evaluated in a fixed UTC offset (Singapore) regardless of host timezone.
LOCAL_UTC_OFFSET_HOURS = int(os.getenv("TASKCYCLE_UTC_OFFSET_HOURS", "8"))
DATE_FORMAT = "%Y-%m-%d"

# Recurrence defaults
DEFAULT_RECURRENCE_INTERVAL = 1
FIRST_OCCURRENCE = 1

# Deadline notifications
UPCOMING_DEADLINE_OFFSETS = _parse_offsets(os.getenv("UPCOMING_DEADLINE_OFFSETS", "1,3,7"))
DEADLINE_CHECK_COOLDOWN = timedelta(seconds=int(os.getenv("DEADLINE_CHECK_COOLDOWN_SECONDS", "300")))
MISSED_DEADLINE_DAY_OFFSET = 0  # Missed notifications share one dedup slot per task/recipient
NOTIFICATION_CATEGORY_DEADLINE = "deadline"
