"""
Answer Normalization
====================
Canonicalizes raw student / answer-key text before comparison.

OCR and handwriting produce many spellings of the same answer ("B", "b)",
"B."), so every comparison in the grading engine runs on the normalized
form returned here. Normalization depends on the question type.
"""

import re


# =============================================================================
# QUESTION TYPES
# =============================================================================

MULTIPLE_CHOICE = 'multiple_choice'
FILL_IN = 'fill_in'
SHORT_ANSWER = 'short_answer'
TRUE_FALSE = 'true_false'
MATH = 'math'
UNKNOWN = 'unknown'

QUESTION_TYPES = (MULTIPLE_CHOICE, FILL_IN, SHORT_ANSWER, TRUE_FALSE, MATH, UNKNOWN)

TRUE_VALUES = {'true', 't', 'yes', 'y', '1', 'correct'}
FALSE_VALUES = {'false', 'f', 'no', 'n', '0', 'incorrect'}

_QUOTE_CHARS = re.compile(r'[\'"‘’“”]')
_WHITESPACE = re.compile(r'\s+')
_TRAILING_PUNCT = re.compile(r'[\s.,;:!?]+$')
_LEADING_LETTER = re.compile(r'^([a-e])(?:[.):]|\s|$)')
_NUMERIC_ANSWER = re.compile(r'^-?\d+(?:\.\d+)?(?:/\d+)?%?$')
_LETTER_ANSWER = re.compile(r'^[a-e][.):]?$')


def coerce_question_type(value) -> str:
    """Map a stored question type onto one of QUESTION_TYPES (else 'unknown')."""
    if not value:
        return UNKNOWN
    value = str(value).strip().lower()
    return value if value in QUESTION_TYPES else UNKNOWN


# =============================================================================
# NORMALIZATION
# =============================================================================

def _clean_text(answer) -> str:
    """Steps shared by every question type: case, quotes, spacing, trailing punctuation."""
    if answer is None:
        return ''
    text = str(answer).strip().lower()
    text = _QUOTE_CHARS.sub('', text)
    text = _WHITESPACE.sub(' ', text).strip()
    return _TRAILING_PUNCT.sub('', text)


def _normalize_multiple_choice(text: str) -> str:
    match = _LEADING_LETTER.match(text)
    if match:
        return match.group(1)
    return text


def _normalize_true_false(text: str) -> str:
    if text in TRUE_VALUES:
        return 'true'
    if text in FALSE_VALUES:
        return 'false'
    return text


def _normalize_math(text: str) -> str:
    text = _WHITESPACE.sub('', text)
    text = text.replace('×', '*').replace('÷', '/').replace('−', '-')
    # Thousands separators: "1,000" -> "1000"
    return text.replace(',', '')


_TYPE_NORMALIZERS = {
    MULTIPLE_CHOICE: _normalize_multiple_choice,
    TRUE_FALSE: _normalize_true_false,
    MATH: _normalize_math,
}


def normalize_answer(answer, question_type: str) -> str:
    """
    Normalize an answer for comparison.

    Args:
        answer: Raw answer text (None and non-strings are tolerated)
        question_type: One of QUESTION_TYPES; anything else gets generic cleanup only

    Returns:
        Canonical lower-case string, '' for blank input
    """
    text = _clean_text(answer)
    normalizer = _TYPE_NORMALIZERS.get(question_type)
    if normalizer is None:
        return text
    return normalizer(text)


# =============================================================================
# TYPE DETECTION
# =============================================================================

def detect_question_type(answer) -> str:
    """
    Guess the question type from the shape of an answer.

    Used when an answer-key row has no stored type: single letters are
    multiple choice, true/false words are true/false, numbers (including
    fractions and percentages) are math, short phrases are fill-in and
    anything longer is short answer.
    """
    text = '' if answer is None else str(answer).strip().lower()
    if not text:
        return UNKNOWN

    if _LETTER_ANSWER.match(text):
        return MULTIPLE_CHOICE

    if text in ('true', 'false', 't', 'f', 'yes', 'no'):
        return TRUE_FALSE

    if _NUMERIC_ANSWER.match(_WHITESPACE.sub('', text)):
        return MATH

    if len(text.split()) <= 3:
        return FILL_IN

    return SHORT_ANSWER
