# booking_scheduler/services/slots/calculator.py
"""
Slot generation for one work window.

Produces "HH:MM" start times on the step grid of [window.start, window.end).
A candidate is dropped when [start, start + min_duration) overlaps any booked
range. min_duration is the shortest duration any treatment publishes, so a
slot is only offered if at least the shortest treatment fits; longer
treatments are checked again at confirm time.

Contains:
✓ work window of one location
✓ booked ranges (already padded with travel buffer)

Does NOT contain:
✗ Override / default schedule choice (availability.py)
✗ Booking lookup (availability.py)
"""

import logging
from typing import Iterable

from ...schemas.availability import WorkWindow
from ...schemas.treatments import Treatment
from .timemath import Interval, minutes_to_time_str, overlaps, time_str_to_minutes

logger = logging.getLogger(__name__)


def generate_slots(
    window: WorkWindow,
    booked_ranges: Iterable[Interval],
    step_minutes: int,
    min_duration_minutes: int,
) -> list[str]:
    """
    Offerable start times for a work window.

    Args:
        window: Work window with local "HH:MM" start/end
        booked_ranges: (start_min, end_min) in minutes since local midnight
        step_minutes: Candidate grid step
        min_duration_minutes: Span that must be free after each start

    Returns:
        Sorted list of "HH:MM". Empty when start/end are missing or equal.

    Raises:
        MalformedTime: start or end is present but not "HH:MM".
    """
    if not window.start or not window.end:
        return []

    start_min = time_str_to_minutes(window.start)
    end_min = time_str_to_minutes(window.end)
    if start_min >= end_min:
        return []

    ranges = list(booked_ranges)
    slots: list[str] = []

    t = start_min
    while t < end_min:
        candidate = (t, t + min_duration_minutes)
        blocking = next((r for r in ranges if overlaps(candidate, r)), None)
        if blocking is None:
            slots.append(minutes_to_time_str(t))
        else:
            logger.debug(
                f"Slot {minutes_to_time_str(t)} at {window.location} overlaps booked "
                f"{minutes_to_time_str(blocking[0])}-{minutes_to_time_str(blocking[1])}"
            )
        t += step_minutes

    return slots


def minimum_treatment_duration(treatments: Iterable[Treatment], default: int = 30) -> int:
    """Shortest published duration across all treatments, or default if none."""
    durations = [t.min_duration for t in treatments if t.min_duration is not None]
    return min(durations) if durations else default
