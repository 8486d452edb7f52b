"""Next-occurrence calculation for recurring tasks."""

import logging
from datetime import date
from typing import Optional, Union

from taskcycle.errors import InvalidPattern
from taskcycle.models.task import RecurrencePattern
from taskcycle.recurrence.calendar_math import (
    WEEKDAY_NAMES,
    add_days,
    add_months,
    add_years,
    format_date,
    next_weekday,
)

logger = logging.getLogger(__name__)

WEEKDAY_PATTERNS = (RecurrencePattern.WEEKLY, RecurrencePattern.BIWEEKLY)


def parse_pattern(pattern: Union[RecurrencePattern, str, None]) -> RecurrencePattern:
    """Convert a stored pattern value to RecurrencePattern, raising InvalidPattern."""
    if isinstance(pattern, RecurrencePattern):
        return pattern
    try:
        return RecurrencePattern(str(pattern).strip().lower())
    except (ValueError, AttributeError):
        raise InvalidPattern(pattern) from None


def next_occurrence(
    current_due_date: date,
    pattern: Union[RecurrencePattern, str],
    interval: int = 1,
    weekday: Optional[int] = None,
) -> date:
    """Compute the due date of the occurrence after `current_due_date`.

    Args:
        current_due_date: Due date of the current occurrence
        pattern: Recurrence pattern
        interval: Every N units of the pattern (>= 1)
        weekday: Target weekday (Sunday=0) for weekly/biweekly; ignored by other patterns

    Returns:
        The next due date, always later than `current_due_date`

    Raises:
        InvalidPattern: if the pattern is unknown
    """
    p = parse_pattern(pattern)
    if interval is None:
        interval = 1
    if interval < 1:
        raise ValueError(f"interval must be >= 1, got {interval}")

    if p == RecurrencePattern.DAILY:
        result = add_days(current_due_date, interval)
    elif p == RecurrencePattern.WEEKLY:
        if weekday is not None:
            result = next_weekday(current_due_date, weekday, 0)
        else:
            result = add_days(current_due_date, 7 * interval)
    elif p == RecurrencePattern.BIWEEKLY:
        if weekday is not None:
            # One extra week guarantees a two-week gap even when landing on the same weekday.
            result = next_weekday(current_due_date, weekday, 1)
        else:
            result = add_days(current_due_date, 14 * interval)
    elif p == RecurrencePattern.MONTHLY:
        result = add_months(current_due_date, interval)
    elif p == RecurrencePattern.QUARTERLY:
        result = add_months(current_due_date, 3 * interval)
    elif p == RecurrencePattern.YEARLY:
        result = add_years(current_due_date, interval)
    else:
        raise InvalidPattern(pattern)

    if weekday is not None and p in WEEKDAY_PATTERNS:
        logger.debug(
            f"{p.value} occurrence after {format_date(current_due_date)} pinned to "
            f"{WEEKDAY_NAMES[weekday]}: {format_date(result)}"
        )
    else:
        logger.debug(f"{p.value} x{interval} occurrence after {format_date(current_due_date)}: {format_date(result)}")
    return result
