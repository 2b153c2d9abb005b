from typing import Iterable, List

from models.schemas import CandidateSlot, FreeInterval
from services.errors import InvalidDurationError


def partition(free_intervals: Iterable[FreeInterval], duration: int) -> List[CandidateSlot]:
    """
    Splits each free interval into back-to-back slots of exactly `duration` minutes.

    Slots start at the interval start; a tail shorter than `duration` is dropped.
    Intervals are handled independently, so a slot never straddles two of them
    even when they touch.

    Raises:
        InvalidDurationError: If duration is not a positive whole number of minutes.
    """
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise InvalidDurationError(f"Slot duration must be a positive number of minutes, got {duration!r}")

    slots = []
    for interval in free_intervals:
        start = interval.start
        while start + duration <= interval.end:
            slots.append(CandidateSlot(day=interval.day, start=start, end=start + duration))
            start += duration
    return slots
