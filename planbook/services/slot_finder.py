"""
Lesson Auto-Scheduling
======================
Finds the next free calendar slot for a lesson from the teacher's weekly
availability rules.

A rule says "Math happens Mondays 09:00-10:00". For each upcoming weekday
the matching rules become candidate slots; the earliest candidate that does
not overlap an existing booking wins. The caller supplies ``now`` and the
existing bookings, nothing here reads the clock or touches storage.

Rules:     {'id', 'subject', 'day_of_week' (0=Sunday), 'start_time' "HH:MM",
            'end_time' "HH:MM", 'is_active'}
Bookings:  (start, end) pairs or {'start_time', 'end_time'} dicts, values
           as datetimes or ISO-8601 strings
Slots:     {'start_time': datetime, 'end_time': datetime, 'rule_id'}
"""

import logging
import math
from datetime import datetime, timedelta

from planbook.config import SEARCH_WINDOW_DAYS

logger = logging.getLogger(__name__)

SUNDAY = 0
SATURDAY = 6

# Subject color mapping
SUBJECT_COLORS = {
    'math': '#3B82F6',
    'reading': '#10B981',
    'ela': '#10B981',
    'english language arts': '#10B981',
    'science': '#8B5CF6',
    'social studies': '#F59E0B',
    'history': '#F59E0B',
    'writing': '#EC4899',
    'phonics': '#06B6D4',
    'art': '#F97316',
    'music': '#A855F7',
    'pe': '#EF4444',
    'physical education': '#EF4444',
}
DEFAULT_COLOR = '#6B7280'


def get_subject_color(subject: str) -> str:
    """Calendar color for a subject (gray when the subject is not recognized)."""
    return SUBJECT_COLORS.get((subject or '').strip().lower(), DEFAULT_COLOR)


def rule_matches_subject(rule_subject: str, subject: str) -> bool:
    """Loose subject match: either name contains the other, ignoring case ("Math" ~ "Mathematics")."""
    a = (rule_subject or '').strip().lower()
    b = (subject or '').strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def filter_rules_for_subject(rules: list, subject: str) -> list:
    """Active rules whose subject matches the requested subject."""
    return [
        rule for rule in rules or []
        if rule.get('is_active', True) and rule_matches_subject(rule.get('subject'), subject)
    ]


# =============================================================================
# PARSING
# =============================================================================

def _parse_clock(value: str):
    """'HH:MM' or 'HH:MM:SS' -> (hour, minute). Seconds are dropped."""
    parts = str(value).split(':')
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time of day: {value}")
    return hour, minute


def _parse_instant(value, now: datetime) -> datetime:
    """Datetime or ISO string, aligned with now's timezone awareness."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    if not isinstance(value, datetime):
        raise ValueError(f"Not a datetime: {value!r}")

    if now.tzinfo is None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    if now.tzinfo is not None:
        if value.tzinfo is None:
            return value.replace(tzinfo=now.tzinfo)
        return value.astimezone(now.tzinfo)
    return value


def _parse_bookings(bookings, now: datetime) -> list:
    intervals = []
    for booking in bookings or []:
        try:
            if isinstance(booking, dict):
                start, end = booking['start_time'], booking['end_time']
            else:
                start, end = booking
            intervals.append((_parse_instant(start, now), _parse_instant(end, now)))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unparseable booking %r: %s", booking, e)
    return intervals


def day_of_week(date) -> int:
    """Weekday number with Sunday as 0, matching stored rules."""
    return (date.weekday() + 1) % 7


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open interval overlap; touching intervals do not conflict."""
    return start < other_end and end > other_start


# =============================================================================
# CANDIDATE GENERATION
# =============================================================================

def generate_candidates(rules: list, duration_minutes, now: datetime,
                        search_window_days: int = SEARCH_WINDOW_DAYS) -> list:
    """
    All weekday slots the rules offer in the search window, earliest first.

    A rule/day pairing is dropped when its start is not after ``now`` or when
    the rule's window is shorter than the lesson. Slots last exactly
    ``duration_minutes`` even when the rule window is longer.
    """
    duration = timedelta(minutes=duration_minutes)
    candidates = []

    for offset in range(search_window_days):
        date = (now + timedelta(days=offset)).date()
        weekday = day_of_week(date)
        if weekday in (SATURDAY, SUNDAY):
            continue

        for rule in rules or []:
            if not rule.get('is_active', True):
                continue
            try:
                if int(rule.get('day_of_week')) != weekday:
                    continue
                start_hour, start_min = _parse_clock(rule['start_time'])
                end_hour, end_min = _parse_clock(rule['end_time'])
            except (KeyError, TypeError, ValueError, IndexError) as e:
                logger.warning("Skipping invalid schedule rule %s: %s", rule.get('id'), e)
                continue

            slot_start = datetime(date.year, date.month, date.day, start_hour, start_min,
                                  tzinfo=now.tzinfo)
            slot_end = datetime(date.year, date.month, date.day, end_hour, end_min,
                                tzinfo=now.tzinfo)

            if slot_start <= now:
                continue
            if slot_end - slot_start < duration:
                continue

            candidates.append({
                'start_time': slot_start,
                'end_time': slot_start + duration,
                'rule_id': rule.get('id'),
            })

    candidates.sort(key=lambda slot: slot['start_time'])
    return candidates


def _free_candidates(rules, bookings, duration_minutes, now, search_window_days):
    try:
        valid = math.isfinite(float(duration_minutes)) and float(duration_minutes) > 0
    except (TypeError, ValueError):
        valid = False
    if not valid:
        logger.warning("Cannot schedule a lesson of %s minutes", duration_minutes)
        return
    duration_minutes = float(duration_minutes)
    intervals = _parse_bookings(bookings, now)
    for slot in generate_candidates(rules, duration_minutes, now, search_window_days):
        conflict = any(
            overlaps(slot['start_time'], slot['end_time'], start, end)
            for start, end in intervals
        )
        if not conflict:
            yield slot


# =============================================================================
# PUBLIC API
# =============================================================================

def find_next_slot(rules: list, bookings: list, duration_minutes, now: datetime,
                   search_window_days: int = SEARCH_WINDOW_DAYS):
    """
    Find the earliest conflict-free slot for a lesson.

    Args:
        rules: Availability rules (already filtered to the lesson's subject)
        bookings: Existing calendar bookings in the window
        duration_minutes: Lesson length
        now: Current instant; only slots starting after it are offered
        search_window_days: How many days ahead to look, starting today

    Returns:
        Slot dict, or None when nothing fits in the window (manual scheduling needed)
    """
    return next(_free_candidates(rules, bookings, duration_minutes, now, search_window_days), None)


def find_alternative_slots(rules: list, bookings: list, duration_minutes, now: datetime,
                           search_window_days: int = 7, limit: int = 3) -> list:
    """Up to ``limit`` conflict-free slots to offer when auto-scheduling is declined."""
    alternatives = []
    for slot in _free_candidates(rules, bookings, duration_minutes, now, search_window_days):
        alternatives.append(slot)
        if len(alternatives) >= limit:
            break
    return alternatives


def format_slot_time(slot: dict) -> str:
    """Human-readable slot start, e.g. 'Monday at 9:30 AM'."""
    start = slot['start_time']
    hour = start.hour % 12 or 12
    return f"{start.strftime('%A')} at {hour}:{start.minute:02d} {'AM' if start.hour < 12 else 'PM'}"
