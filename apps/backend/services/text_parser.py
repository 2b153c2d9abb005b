import re
import logging
from typing import List, Dict, Optional, Tuple

from models.schemas import BusyInterval, WeekDay, WeeklySchedule
from models.time_of_day import parse_time, format_time
from services.errors import ParseError

logger = logging.getLogger(__name__)

DAY_ALIASES: Dict[str, WeekDay] = {
    'mon': WeekDay.MON, 'monday': WeekDay.MON,
    'tue': WeekDay.TUE, 'tues': WeekDay.TUE, 'tuesday': WeekDay.TUE,
    'wed': WeekDay.WED, 'weds': WeekDay.WED, 'wednesday': WeekDay.WED,
    'thu': WeekDay.THU, 'thur': WeekDay.THU, 'thurs': WeekDay.THU, 'thursday': WeekDay.THU,
    'fri': WeekDay.FRI, 'friday': WeekDay.FRI,
    'sat': WeekDay.SAT, 'saturday': WeekDay.SAT,
    'sun': WeekDay.SUN, 'sunday': WeekDay.SUN,
}

_RANGE_RE = re.compile(r'(\d{1,2}[:.]\d{2})\s*(?:-|–|—|to)\s*(\d{1,2}[:.]\d{2})', re.IGNORECASE)
_WORD_RE = re.compile(r'[^\W\d_]+')
_LABEL_STRIP = " \t|,;-–—"

# (day, start, end, label)
RawEntry = Tuple[WeekDay, int, int, str]


class TimetableParser:
    """
    Parser for raw weekly availability text (e.g., copied from a timetable page).

    Heuristics:
    - Works line by line; blank lines and lines without a time range are noise,
      except a line carrying only a day name, which sets the day for the
      following lines (tables copied with the day as a header row).
    - A day token must appear before the first time range of its line.
      A line whose leading words contain no known day is skipped, as is a
      range seen before any day; both are reported in `warnings`.
    - Each time range on a line becomes one busy interval. The text after a
      range, up to the next range, is its label.
    """
    def parse(self, text: str) -> WeeklySchedule:
        """
        Parses availability text into a WeeklySchedule.

        Example input:
            MON 09:00-10:00 CS101
            Tuesday
              9:30 - 11:00  Lab
              13:00-14:00   Office hours

        Raises:
            ParseError: no day/time entries found, a time token is out of range,
                or a range does not end after it starts.
        """
        entries: List[RawEntry] = []
        skipped: List[str] = []
        current_day: Optional[WeekDay] = None

        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped:
                continue

            ranges = list(_RANGE_RE.finditer(stripped))
            leading = stripped[:ranges[0].start()] if ranges else stripped
            words = _WORD_RE.findall(leading)
            day = self._find_day(words)

            if day:
                current_day = day
            elif words and ranges:
                skipped.append(f"Line {line_number}: no recognizable day in {leading.strip()!r}; skipped")
                continue

            if not ranges:
                continue

            if current_day is None:
                skipped.append(f"Line {line_number}: time range without a day; skipped")
                continue

            for i, match in enumerate(ranges):
                start, end = self._parse_range(match, line_number)
                label_end = ranges[i + 1].start() if i + 1 < len(ranges) else len(stripped)
                label = " ".join(stripped[match.end():label_end].strip(_LABEL_STRIP).split())
                entries.append((current_day, start, end, label))

        if not entries:
            raise ParseError("No recognizable day and time entries found")

        days = self._normalize(entries)
        warnings = skipped + self._find_cross_label_overlaps(days)
        for w in warnings:
            logger.warning("Timetable parse: %s", w)

        return WeeklySchedule(days=days, warnings=tuple(warnings))

    def _find_day(self, words: List[str]) -> Optional[WeekDay]:
        for word in words:
            day = DAY_ALIASES.get(word.lower())
            if day:
                return day
        return None

    def _parse_range(self, match: re.Match, line_number: int) -> Tuple[int, int]:
        token = match.group(0)
        try:
            start = parse_time(match.group(1))
            end = parse_time(match.group(2))
        except ValueError as e:
            raise ParseError(f"Line {line_number}: {e}", line_number=line_number, token=token) from e
        if end <= start:
            raise ParseError(
                f"Line {line_number}: range {token!r} does not end after it starts",
                line_number=line_number,
                token=token,
            )
        return start, end

    def _normalize(self, entries: List[RawEntry]) -> Dict[WeekDay, Tuple[BusyInterval, ...]]:
        # Union of same-day, same-label intervals (overlapping or touching)
        grouped: Dict[Tuple[WeekDay, str], List[Tuple[int, int]]] = {}
        for day, start, end, label in entries:
            grouped.setdefault((day, label), []).append((start, end))

        per_day: Dict[WeekDay, List[BusyInterval]] = {}
        for (day, label), spans in grouped.items():
            spans.sort()
            merged = [list(spans[0])]
            for start, end in spans[1:]:
                if start <= merged[-1][1]:
                    merged[-1][1] = max(merged[-1][1], end)
                else:
                    merged.append([start, end])
            per_day.setdefault(day, []).extend(
                BusyInterval(day=day, start=s, end=e, label=label) for s, e in merged
            )

        return {
            day: tuple(sorted(per_day[day], key=lambda i: (i.start, i.end, i.label)))
            for day in WeekDay if day in per_day
        }

    def _find_cross_label_overlaps(self, days: Dict[WeekDay, Tuple[BusyInterval, ...]]) -> List[str]:
        warnings = []
        for day, intervals in days.items():
            for i, first in enumerate(intervals):
                for second in intervals[i + 1:]:
                    if second.start >= first.end:
                        break
                    warnings.append(
                        f"{day.value}: {format_time(first.start)}-{format_time(first.end)} ({first.label or '-'}) "
                        f"overlaps {format_time(second.start)}-{format_time(second.end)} ({second.label or '-'}); kept both"
                    )
        return warnings


def format_schedule(schedule: WeeklySchedule) -> str:
    """Renders a schedule back to text that `TimetableParser.parse` reads to an equal schedule."""
    lines = []
    for interval in schedule.all_intervals():
        line = f"{interval.day.value} {format_time(interval.start)}-{format_time(interval.end)}"
        if interval.label:
            line += f" {interval.label}"
        lines.append(line)
    return "\n".join(lines)
