"""
Shared test fixtures for Planbook grading and scheduling.
All data is inline; no network, no clock reads (``now`` is pinned).
"""
from datetime import datetime

import pytest


@pytest.fixture
def app():
    """Flask app with every blueprint registered."""
    from planbook.app import create_app
    app = create_app()
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def monday_morning():
    """2024-01-01 was a Monday."""
    return datetime(2024, 1, 1, 8, 0)


@pytest.fixture
def math_rule():
    """Math every Monday 09:00-10:00."""
    return {
        "id": "rule-math-mon",
        "subject": "Math",
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "10:00",
        "is_active": True,
    }


@pytest.fixture
def sample_answer_key():
    return [
        {"question_number": 1, "correct_answer": "A", "question_type": "multiple_choice",
         "points": 1, "accepted_variants": []},
        {"question_number": 2, "correct_answer": "42", "question_type": "math",
         "points": 2, "accepted_variants": []},
    ]
