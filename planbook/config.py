"""
Configuration management for Planbook backend.
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# Server configuration
HOST = os.getenv("PLANBOOK_HOST", "0.0.0.0")
PORT = _env_int("PLANBOOK_PORT", 3000)
DEBUG = os.getenv("PLANBOOK_DEBUG", "false").lower() in ("1", "true", "yes")

# Grading configuration
DEFAULT_MATH_TOLERANCE = _env_float("PLANBOOK_MATH_TOLERANCE", 0.01)

# Fuzzy-match cutoffs. Tuned by hand; expect per-school adjustment.
GRADING_THRESHOLDS = {
    "fill_in_accept": _env_float("PLANBOOK_FILL_IN_ACCEPT", 0.9),
    "fill_in_review": _env_float("PLANBOOK_FILL_IN_REVIEW", 0.75),
    "short_answer_accept": _env_float("PLANBOOK_SHORT_ANSWER_ACCEPT", 0.8),
    "short_answer_review": _env_float("PLANBOOK_SHORT_ANSWER_REVIEW", 0.5),
}

# Extraction configuration
MAX_QUESTION_NUMBER = 200
MAX_LINE_LENGTH = 100
LOW_CONFIDENCE_THRESHOLD = _env_float("PLANBOOK_LOW_CONFIDENCE", 0.7)

# Scheduling configuration
DEFAULT_LESSON_DURATION = _env_int("PLANBOOK_LESSON_DURATION", 45)
SEARCH_WINDOW_DAYS = _env_int("PLANBOOK_SEARCH_WINDOW_DAYS", 14)


class Config:
    """Application configuration class."""

    def __init__(self):
        self.math_tolerance = DEFAULT_MATH_TOLERANCE
        self.grading_thresholds = dict(GRADING_THRESHOLDS)
        self.low_confidence_threshold = LOW_CONFIDENCE_THRESHOLD
        self.lesson_duration = DEFAULT_LESSON_DURATION
        self.search_window_days = SEARCH_WINDOW_DAYS

    def to_dict(self):
        return {
            "math_tolerance": self.math_tolerance,
            "grading_thresholds": dict(self.grading_thresholds),
            "low_confidence_threshold": self.low_confidence_threshold,
            "lesson_duration": self.lesson_duration,
            "search_window_days": self.search_window_days,
        }

    def update(self, data: dict):
        for key, value in data.items():
            if key == "grading_thresholds" and isinstance(value, dict):
                self.grading_thresholds.update(value)
            elif hasattr(self, key):
                setattr(self, key, value)


# Global config instance
config = Config()
