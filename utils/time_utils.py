"""
Time, day and teaching-week helpers shared by the generator and the routes.
"""

import re
from typing import FrozenSet, Iterable, List, Optional


WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday']

DAY_NAMES = {
    'MON': 'Monday',
    'TUE': 'Tuesday',
    'WED': 'Wednesday',
    'THU': 'Thursday',
    'FRI': 'Friday',
    'SAT': 'Saturday',
    'SUN': 'Sunday',
}

DAY_ORDER = {name: i for i, name in enumerate(DAY_NAMES.values())}

DEFAULT_WEEKS_LABEL = 'Weeks 1-13'

_TIME_RE = re.compile(r'^\s*(\d{1,2})(?::(\d{2}))?\s*([ap]m)?\s*$', re.IGNORECASE)


def normalize_day(day: str) -> str:
    """Map 'MON', 'mon', 'Monday' etc. to the full day name."""
    if not day:
        raise ValueError('Day is required')
    if not isinstance(day, str):
        raise ValueError(f'Unknown day: {day!r}')
    key = day.strip()[:3].upper()
    if key not in DAY_NAMES:
        raise ValueError(f'Unknown day: {day!r}')
    return DAY_NAMES[key]


def time_to_hours(time_str: str) -> float:
    """
    Convert a wall-clock string to fractional hours.

    Accepts '9:00am', '12:30pm', '1pm' and 24-hour '13:30'.
    """
    if not isinstance(time_str, str):
        raise ValueError(f'Unparseable time: {time_str!r}')
    match = _TIME_RE.match(time_str)
    if not match:
        raise ValueError(f'Unparseable time: {time_str!r}')

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or '').lower()

    if minute >= 60:
        raise ValueError(f'Unparseable time: {time_str!r}')
    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f'Unparseable time: {time_str!r}')
        if meridiem == 'pm' and hour < 12:
            hour += 12
        elif meridiem == 'am' and hour == 12:
            hour = 0
    elif hour > 24:
        raise ValueError(f'Unparseable time: {time_str!r}')

    return hour + minute / 60


def ranges_overlap(start1: float, end1: float, start2: float, end2: float) -> bool:
    """Half-open [start, end) intersection."""
    return start1 < end2 and start2 < end1


def extract_weeks_info(description: Optional[str]) -> str:
    """
    Pull the teaching-weeks phrase out of a class descriptor.

    Recognises '(Week 9)', 'Weeks 3-10', 'Week 9' and 'Weeks 1, 3, 5'.
    Anything else runs every week of the semester.
    """
    text = description or ''

    match = re.search(r'\(Week\s+(\d+)\)', text, re.IGNORECASE)
    if match:
        return f'Week {match.group(1)}'

    match = re.search(r'Weeks?\s+(\d+)\s*[-–]\s*(\d+)', text, re.IGNORECASE)
    if match:
        return f'Weeks {match.group(1)}-{match.group(2)}'

    match = re.search(r'Week\s+(\d+)(?!\s*[-–\d])', text, re.IGNORECASE)
    if match:
        return f'Week {match.group(1)}'

    match = re.search(r'Weeks\s+(\d+(?:\s*,\s*\d+)+)', text, re.IGNORECASE)
    if match:
        weeks = ', '.join(w.strip() for w in match.group(1).split(','))
        return f'Weeks {weeks}'

    return DEFAULT_WEEKS_LABEL


def parse_weeks(weeks_info: str) -> FrozenSet[int]:
    """Turn a label produced by extract_weeks_info into week numbers."""
    match = re.match(r'Weeks\s+(\d+)-(\d+)$', weeks_info, re.IGNORECASE)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        return frozenset(range(start, end + 1))

    match = re.match(r'Week\s+(\d+)$', weeks_info, re.IGNORECASE)
    if match:
        return frozenset([int(match.group(1))])

    match = re.match(r'Weeks\s+([\d,\s]+)$', weeks_info, re.IGNORECASE)
    if match:
        return frozenset(int(w) for w in match.group(1).split(',') if w.strip().isdigit())

    return frozenset(range(1, 14))


def active_weeks(description: Optional[str]) -> FrozenSet[int]:
    return parse_weeks(extract_weeks_info(description))


def generate_class_id(unit_code: str, activity_type: str, day: str, start_time: str,
                      end_time: str, location: str, description: Optional[str]) -> str:
    """Stable identifier for one real-world class slot."""
    parts = [
        unit_code or '',
        activity_type,
        day,
        start_time,
        end_time,
        location or '',
        extract_weeks_info(description),
    ]
    return '-'.join(parts)


def merge_unavailability_windows(windows: Iterable) -> List:
    """
    Merge same-day windows where one ends exactly where the next starts.

    Works on any objects exposing day/start_hour/end_hour and a
    ``merged_with(end_hour)`` constructor for the widened copy.
    """
    ordered = sorted(windows, key=lambda w: (DAY_ORDER.get(w.day, 99), w.start_hour))
    if not ordered:
        return []

    merged = []
    current = ordered[0]
    for window in ordered[1:]:
        if window.day == current.day and window.start_hour == current.end_hour:
            current = current.merged_with(window.end_hour)
        else:
            merged.append(current)
            current = window
    merged.append(current)
    return merged
