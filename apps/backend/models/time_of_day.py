import re

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r'^\s*(\d{1,2})[:.](\d{2})\s*$')


def parse_time(text: str) -> int:
    """
    Converts a wall-clock token ("9:05", "09:05", "9.05") to minutes since midnight.

    Raises:
        ValueError: If the token is not a valid time of day.
    """
    match = _TIME_RE.match(text)
    if not match:
        raise ValueError(f"Not a time of day: {text!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {text!r}")
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
