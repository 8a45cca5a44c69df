from typing import Iterable, List, Tuple

from carwash.services.time_utils import time_to_minutes, minutes_to_time

# (start minute, duration in minutes)
Window = Tuple[int, int]


def generate_slots(duration: int, open_time: str, close_time: str) -> List[str]:
    """
    Candidate start times between opening and closing.

    A slot is emitted every `duration` minutes from `open_time`; the last one
    must finish at or before `close_time`. Bad configuration (non-positive
    duration, open not before close) yields no slots.
    """
    start = time_to_minutes(open_time)
    end = time_to_minutes(close_time)

    if duration is None or duration <= 0 or start >= end:
        return []

    slots = []
    current = start
    while current + duration <= end:
        slots.append(minutes_to_time(current))
        current += duration
    return slots


def windows_overlap(s1: int, d1: int, s2: int, d2: int) -> bool:
    # Half-open intervals: touching endpoints do not conflict
    return s1 < s2 + d2 and s2 < s1 + d1


def overlaps(existing: Iterable[Window], candidate_start: int, candidate_duration: int) -> bool:
    """True if the candidate window intersects any existing reservation window."""
    return any(
        windows_overlap(start, duration, candidate_start, candidate_duration)
        for start, duration in existing
    )


def booking_windows(bookings) -> List[Window]:
    """Reservation windows for bookings already filtered to blocking ones."""
    return [(time_to_minutes(b.time), b.service.duration) for b in bookings]
