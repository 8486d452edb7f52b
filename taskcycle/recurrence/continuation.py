"""Series continuation policy: should a recurring series produce another occurrence."""

from datetime import date
from typing import Optional

from taskcycle.models.results import TerminationReason


def termination_reason(
    next_date: date,
    end_date: Optional[date],
    max_count: Optional[int],
    current_occurrence: int,
) -> Optional[TerminationReason]:
    """Why the series stops after `current_occurrence`, or None if it continues.

    The count check runs before incrementing, so a series with max_count=N stops
    once occurrence N completes. Either terminator alone is final.
    """
    if end_date is not None and next_date > end_date:
        return TerminationReason.END_DATE_REACHED
    if max_count is not None and current_occurrence >= max_count:
        return TerminationReason.MAX_COUNT_REACHED
    return None


def should_continue(
    next_date: date,
    end_date: Optional[date],
    max_count: Optional[int],
    current_occurrence: int,
) -> bool:
    return termination_reason(next_date, end_date, max_count, current_occurrence) is None
