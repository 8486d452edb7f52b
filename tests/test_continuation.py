"""Tests for the series continuation policy."""

from datetime import date

from taskcycle.models.results import TerminationReason
from taskcycle.recurrence.continuation import should_continue, termination_reason


def test_unbounded_series_continues():
    assert should_continue(date(2030, 1, 1), None, None, 500) is True


def test_next_date_after_end_date_stops():
    assert termination_reason(date(2025, 11, 1), date(2025, 10, 31), None, 1) == TerminationReason.END_DATE_REACHED


def test_next_date_on_end_date_continues():
    assert should_continue(date(2025, 10, 31), date(2025, 10, 31), None, 1) is True


def test_max_count_reached():
    assert termination_reason(date(2025, 11, 1), None, 3, 3) == TerminationReason.MAX_COUNT_REACHED
    assert should_continue(date(2025, 11, 1), None, 3, 2) is True


def test_end_date_reported_before_max_count():
    assert termination_reason(date(2025, 11, 1), date(2025, 10, 1), 2, 2) == TerminationReason.END_DATE_REACHED


def test_max_count_of_one_never_continues():
    assert should_continue(date(2025, 11, 1), None, 1, 1) is False


def test_termination_is_monotonic_in_occurrence():
    end_date = date(2026, 1, 1)
    next_date = date(2025, 12, 1)
    for max_count in (1, 2, 5):
        stopped = False
        for occurrence in range(1, 10):
            cont = should_continue(next_date, end_date, max_count, occurrence)
            if stopped:
                assert cont is False
            stopped = stopped or not cont
        assert stopped


def test_termination_is_monotonic_in_date():
    end_date = date(2025, 12, 31)
    assert should_continue(date(2026, 1, 1), end_date, None, 1) is False
    assert should_continue(date(2026, 6, 1), end_date, None, 1) is False
