from typing import List

from models.schemas import ActivityWindow, FreeInterval, WeekDay, WeeklySchedule


def derive_free(schedule: WeeklySchedule, window: ActivityWindow) -> List[FreeInterval]:
    """
    Computes the free time of each active day: the complement of its busy
    intervals, restricted to the activity window.

    Walks the day's intervals once with a cursor that starts at the window
    start and only moves forward, so overlapping busy intervals (kept by the
    parser when their labels differ) are handled and no zero-width interval
    is ever produced.

    Returns:
        list: FreeIntervals, days in WeekDay order, chronological within a day.
    """
    free = []
    for day in WeekDay:
        if day not in window.days:
            continue

        cursor = window.start
        for busy in sorted(schedule.intervals_for(day), key=lambda i: i.start):
            if busy.start >= window.end:
                break
            if cursor < busy.start:
                free.append(FreeInterval(day=day, start=cursor, end=busy.start))
            cursor = max(cursor, busy.end)
            if cursor >= window.end:
                break

        if cursor < window.end:
            free.append(FreeInterval(day=day, start=cursor, end=window.end))

    return free
