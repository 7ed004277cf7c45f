"""
Calendar auto-scheduling routes for Planbook.
Proposes the next free slot for a lesson from the teacher's weekly schedule rules.

The caller loads the rules and existing bookings and persists the returned
event; nothing is stored here.
"""
import logging
from datetime import datetime
from flask import Blueprint, request, jsonify

from planbook.config import config
from planbook.services.slot_finder import (
    filter_rules_for_subject, find_next_slot, find_alternative_slots,
    get_subject_color, format_slot_time,
)

logger = logging.getLogger(__name__)

calendar_bp = Blueprint('calendar', __name__)


def _serialize_slot(slot):
    return {
        "start_time": slot['start_time'].isoformat(),
        "end_time": slot['end_time'].isoformat(),
        "rule_id": slot['rule_id'],
    }


def _positive_int(value):
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


@calendar_bp.route('/api/calendar/find-slot', methods=['POST'])
def find_slot():
    """Find the next available lesson slot for a subject."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    subject = data.get('subject')
    if not isinstance(subject, str) or not subject.strip():
        return jsonify({"error": "subject is required"}), 400

    rules = data.get('rules')
    if not isinstance(rules, list) or not all(isinstance(rule, dict) for rule in rules):
        return jsonify({"error": "rules must be a list of objects"}), 400

    bookings = data.get('bookings') or []
    if not isinstance(bookings, list):
        return jsonify({"error": "bookings must be a list"}), 400

    duration = _positive_int(data.get('duration', config.lesson_duration))
    search_days = _positive_int(data.get('search_days', config.search_window_days))
    if duration is None or search_days is None:
        return jsonify({"error": "duration and search_days must be positive integers"}), 400

    now = data.get('now')
    if now:
        try:
            now = datetime.fromisoformat(str(now).replace('Z', '+00:00'))
        except ValueError:
            return jsonify({"error": f"Invalid timestamp: {now}"}), 400
    else:
        now = datetime.now()

    matching_rules = filter_rules_for_subject(rules, subject)
    if not matching_rules:
        return jsonify({
            "success": False,
            "reason": f"No schedule rules found for {subject}. Please set up your schedule in Settings.",
            "needs_manual": True,
        })

    slot = find_next_slot(matching_rules, bookings, duration, now, search_days)
    if slot is None:
        logger.info("No free %s slot in the next %d days", subject, search_days)
        return jsonify({
            "success": False,
            "reason": f"No available slots in the next {search_days} days",
            "needs_manual": True,
            "alternatives": [],
        })

    alternatives = [
        _serialize_slot(s)
        for s in find_alternative_slots(matching_rules, bookings, duration, now, limit=4)
        if s['start_time'] != slot['start_time']
    ][:3]

    color = get_subject_color(subject)
    serialized = _serialize_slot(slot)
    return jsonify({
        "success": True,
        "slot": serialized,
        "event": {
            "title": data.get('title') or f"{subject} Lesson",
            "event_type": "lesson",
            "start_time": serialized['start_time'],
            "end_time": serialized['end_time'],
            "color": color,
            "metadata": {
                "auto_scheduled": True,
                "schedule_rule_id": slot['rule_id'],
            },
        },
        "alternatives": alternatives,
        "message": f"Scheduled for {format_slot_time(slot)}",
    })
