"""
Test: Auto-scheduling slot finder - weekday policy, conflicts, search window.
"""
from datetime import datetime, timedelta, timezone

import pytest
from planbook.services.slot_finder import (
    find_next_slot, find_alternative_slots, generate_candidates, rule_matches_subject,
    filter_rules_for_subject, get_subject_color, format_slot_time, day_of_week, overlaps,
)


def _rule(day, start="09:00", end="10:00", rule_id=None, subject="Math", active=True):
    return {
        "id": rule_id or f"rule-{day}-{start}",
        "subject": subject,
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
        "is_active": active,
    }


class TestFindNextSlot:
    def test_same_day_slot(self, math_rule, monday_morning):
        slot = find_next_slot([math_rule], [], 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 1, 9, 0)
        assert slot["end_time"] == datetime(2024, 1, 1, 9, 45)
        assert slot["rule_id"] == "rule-math-mon"

    def test_start_must_be_after_now(self, math_rule):
        slot = find_next_slot([math_rule], [], 45, datetime(2024, 1, 1, 9, 0))
        assert slot["start_time"] == datetime(2024, 1, 8, 9, 0)

    def test_booked_window_moves_to_next_week(self, math_rule, monday_morning):
        booking = (datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 10, 0))
        slot = find_next_slot([math_rule], [booking], 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 8, 9, 0)

    def test_partial_overlap_conflicts(self, math_rule, monday_morning):
        booking = (datetime(2024, 1, 1, 9, 30), datetime(2024, 1, 1, 10, 30))
        slot = find_next_slot([math_rule], [booking], 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 8, 9, 0)

    def test_touching_booking_does_not_conflict(self, math_rule, monday_morning):
        booking = (datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))
        slot = find_next_slot([math_rule], [booking], 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 1, 9, 0)

    def test_no_slot_when_window_exhausted(self, math_rule, monday_morning):
        bookings = [
            (datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 10, 0)),
            (datetime(2024, 1, 8, 9, 0), datetime(2024, 1, 8, 10, 0)),
        ]
        assert find_next_slot([math_rule], bookings, 45, monday_morning) is None

    def test_search_window_limits_days(self, math_rule, monday_morning):
        booking = (datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 10, 0))
        assert find_next_slot([math_rule], [booking], 45, monday_morning,
                              search_window_days=7) is None

    def test_rule_window_too_short(self, monday_morning):
        rule = _rule(1, "09:00", "09:30")
        assert find_next_slot([rule], [], 45, monday_morning) is None

    def test_long_rule_window_yields_lesson_length_slot(self, monday_morning):
        rule = _rule(1, "09:00", "12:00")
        slot = find_next_slot([rule], [], 30, monday_morning)
        assert slot["end_time"] - slot["start_time"] == timedelta(minutes=30)

    @pytest.mark.parametrize("weekend_day", [0, 6])
    def test_weekend_rules_never_used(self, weekend_day, monday_morning):
        rule = _rule(weekend_day)
        assert find_next_slot([rule], [], 45, monday_morning) is None

    def test_inactive_rules_ignored(self, monday_morning):
        rule = _rule(1, active=False)
        assert find_next_slot([rule], [], 45, monday_morning) is None

    def test_earliest_candidate_wins(self, monday_morning):
        rules = [_rule(2, "08:30", "09:30", "tue"), _rule(1, "13:00", "14:00", "mon")]
        slot = find_next_slot(rules, [], 45, monday_morning)
        assert slot["rule_id"] == "mon"

    def test_seconds_in_rule_times(self, monday_morning):
        rule = _rule(1, "09:00:30", "10:00:00")
        slot = find_next_slot([rule], [], 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 1, 9, 0)

    def test_invalid_rule_skipped(self, math_rule, monday_morning):
        broken = _rule(1, "9am", "10am", "broken")
        slot = find_next_slot([broken, math_rule], [], 45, monday_morning)
        assert slot["rule_id"] == "rule-math-mon"

    def test_iso_and_dict_bookings(self, math_rule, monday_morning):
        bookings = [{"start_time": "2024-01-01T09:00:00", "end_time": "2024-01-01T10:00:00"}]
        slot = find_next_slot([math_rule], bookings, 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 8, 9, 0)

    def test_unparseable_booking_ignored(self, math_rule, monday_morning):
        slot = find_next_slot([math_rule], [{"start_time": "soon"}], 45, monday_morning)
        assert slot["start_time"] == datetime(2024, 1, 1, 9, 0)

    def test_timezone_aware(self, math_rule):
        now = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        bookings = [("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z")]
        slot = find_next_slot([math_rule], bookings, 45, now)
        assert slot["start_time"] == datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("duration", [0, -10, None, "long", float("inf"), float("nan")])
    def test_invalid_duration(self, math_rule, monday_morning, duration):
        assert find_next_slot([math_rule], [], duration, monday_morning) is None


class TestAlternatives:
    def test_up_to_three(self, monday_morning):
        rules = [_rule(1), _rule(3), _rule(5), _rule(2)]
        slots = find_alternative_slots(rules, [], 45, monday_morning)
        assert [s["start_time"].day for s in slots] == [1, 2, 3]

    def test_conflicts_excluded(self, monday_morning):
        rules = [_rule(1), _rule(3)]
        booking = (datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 10, 0))
        slots = find_alternative_slots(rules, [booking], 45, monday_morning)
        assert [s["start_time"].day for s in slots] == [3]


class TestCandidates:
    def test_sorted(self, monday_morning):
        rules = [_rule(5), _rule(1), _rule(3)]
        starts = [c["start_time"] for c in generate_candidates(rules, 45, monday_morning, 7)]
        assert starts == sorted(starts)
        assert len(starts) == 3


class TestHelpers:
    def test_day_of_week_sunday_zero(self):
        assert day_of_week(datetime(2024, 1, 7)) == 0
        assert day_of_week(datetime(2024, 1, 1)) == 1
        assert day_of_week(datetime(2024, 1, 6)) == 6

    def test_overlaps(self):
        a, b, c = datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)
        assert overlaps(a, c, b, c)
        assert not overlaps(a, b, b, c)

    def test_subject_match_both_directions(self):
        assert rule_matches_subject("Math", "Mathematics")
        assert rule_matches_subject("mathematics", "MATH")
        assert not rule_matches_subject("Science", "Math")
        assert not rule_matches_subject("", "Math")

    def test_filter_rules(self):
        rules = [_rule(1, subject="Math"), _rule(2, subject="Reading"),
                 _rule(3, subject="Mathematics", active=False)]
        assert [r["subject"] for r in filter_rules_for_subject(rules, "math")] == ["Math"]

    def test_subject_color(self):
        assert get_subject_color(" Math ") == "#3B82F6"
        assert get_subject_color("Underwater Basket Weaving") == "#6B7280"
        assert get_subject_color(None) == "#6B7280"

    def test_format_slot_time(self):
        assert format_slot_time({"start_time": datetime(2024, 1, 1, 9, 30)}) == "Monday at 9:30 AM"
        assert format_slot_time({"start_time": datetime(2024, 1, 2, 13, 5)}) == "Tuesday at 1:05 PM"
        assert format_slot_time({"start_time": datetime(2024, 1, 3, 0, 0)}) == "Wednesday at 12:00 AM"
