"""
Answer Sheet Grading Service
============================
Decides, per question, whether a scanned student answer matches the answer key.

Every question type has its own grader. Each grader returns the same
``(is_correct, confidence, needs_review)`` triple and ``grade_question``
turns it into a verdict dict:

    {'is_correct': bool, 'confidence': float, 'points_earned': number,
     'needs_review': bool, 'feedback': str (only when needs_review)}

Grading is binary: a question earns all of its points or none. Any fuzzy
match that the engine accepts is also flagged for review so a teacher
sees it before the grade is finalized.
"""

import logging
import re

from sympy import Rational

from planbook.config import config
from planbook.services.answer_normalizer import (
    MULTIPLE_CHOICE, FILL_IN, SHORT_ANSWER, TRUE_FALSE, MATH, UNKNOWN,
    normalize_answer, coerce_question_type, detect_question_type,
)

logger = logging.getLogger(__name__)

REVIEW_FEEDBACK = 'Manual review recommended'

_FRACTION = re.compile(r'^(-?\d+)/(\d+)$')
_PERCENT = re.compile(r'^(-?\d+(?:\.\d+)?)%$')
_DECIMAL = re.compile(r'^[-+]?(?:\d+\.?\d*|\.\d+)$')


# =============================================================================
# STRING SIMILARITY
# =============================================================================

def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost for insert, delete and substitute."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """1 - edit distance / longer length. Two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - levenshtein_distance(a, b) / longest


def word_overlap(a: str, b: str) -> float:
    """Share of words (longer than two characters) the two answers have in common."""
    words_a = {w for w in a.split() if len(w) > 2}
    words_b = {w for w in b.split() if len(w) > 2}
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


# =============================================================================
# NUMBER PARSING
# =============================================================================

def parse_number(text: str):
    """
    Parse a normalized math answer into a float.

    Accepts plain decimals ("3.5", "-2", ".5"), fractions ("3/4") and
    percentages ("50%" -> 0.5). Returns None for anything else, including
    fractions with a zero denominator.
    """
    if not text:
        return None

    frac_match = _FRACTION.match(text)
    if frac_match:
        num, den = int(frac_match.group(1)), int(frac_match.group(2))
        if den == 0:
            return None
        return float(Rational(num, den))

    pct_match = _PERCENT.match(text)
    if pct_match:
        return float(pct_match.group(1)) / 100

    if _DECIMAL.match(text):
        return float(text)

    return None


def within_tolerance(student_value: float, correct_value: float, tolerance: float) -> bool:
    """
    Numeric match test.

    The allowed difference is ``tolerance`` relative to the correct value,
    capped at ``tolerance`` in absolute terms, so 10.05 is not accepted for
    10 at the default 0.01 while 0.499 is accepted for 0.5.

    Above 1 the check is absolute: 99.5 is not accepted for 100 at 0.01.
    Callers grading large values with a relative margin must pass a wider
    tolerance.
    """
    allowed = tolerance * min(1.0, abs(correct_value))
    return abs(student_value - correct_value) <= allowed


# =============================================================================
# PER-TYPE GRADERS
# =============================================================================
# Each grader receives the normalized student answer and the normalized
# candidate answers (candidates[0] is the key's own answer, the rest are
# accepted variants).

def _grade_multiple_choice(student, candidates, tolerance, limits):
    is_correct = student in candidates
    confidence = 0.95 if len(student) == 1 else 0.85
    return is_correct, confidence, False


def _grade_true_false(student, candidates, tolerance, limits):
    return student == candidates[0], 0.95, False


def _grade_fill_in(student, candidates, tolerance, limits):
    if student in candidates:
        return True, 0.95, False

    best = max(string_similarity(student, answer) for answer in candidates)
    if best >= limits['fill_in_accept']:
        return True, 0.85, False
    if best >= limits['fill_in_review']:
        # Close enough that a teacher should look at it
        return False, 0.6, True
    return False, 0.8, False


def _grade_math(student, candidates, tolerance, limits):
    correct = candidates[0]
    student_value = parse_number(student)
    correct_value = parse_number(correct)

    if student_value is not None and correct_value is not None:
        return within_tolerance(student_value, correct_value, tolerance), 0.9, False

    # Expressions we cannot evaluate: compare as text
    if student == correct:
        return True, 0.85, False
    return False, 0.5, True


def _grade_short_answer(student, candidates, tolerance, limits):
    if student in candidates:
        return True, 0.95, False

    for answer in candidates:
        if student and answer and (answer in student or student in answer):
            return True, 0.75, True

    best = max(word_overlap(student, answer) for answer in candidates)
    if best >= limits['short_answer_accept']:
        return True, 0.7, True
    if best >= limits['short_answer_review']:
        return False, 0.5, True
    return False, 0.7, False


def _grade_unknown(student, candidates, tolerance, limits):
    return student == candidates[0], 0.5, True


_GRADERS = {
    MULTIPLE_CHOICE: _grade_multiple_choice,
    TRUE_FALSE: _grade_true_false,
    FILL_IN: _grade_fill_in,
    MATH: _grade_math,
    SHORT_ANSWER: _grade_short_answer,
    UNKNOWN: _grade_unknown,
}


# =============================================================================
# PUBLIC API
# =============================================================================

def _coerce_points(value):
    """Points possible: a non-negative number, defaulting to 1."""
    if isinstance(value, bool) or value is None:
        return 1
    if isinstance(value, (int, float)):
        return value if value >= 0 else 1
    try:
        points = float(value)
    except (TypeError, ValueError):
        return 1
    if points != points or points < 0:
        return 1
    return int(points) if points.is_integer() else points


def grade_question(student_answer, correct_answer, question_type, points_possible=1,
                   accepted_variants=None, tolerance=None, thresholds=None) -> dict:
    """
    Grade one student answer against the answer key.

    Args:
        student_answer: Raw extracted student answer
        correct_answer: Answer-key answer
        question_type: One of the QUESTION_TYPES (unrecognized values grade as 'unknown')
        points_possible: Points awarded for a correct answer
        accepted_variants: Other answers that also count as correct
        tolerance: Math tolerance, defaults to config.math_tolerance
        thresholds: Overrides for config.grading_thresholds

    Returns:
        Verdict dict with is_correct, confidence, points_earned, needs_review
        and, when review is needed, feedback
    """
    question_type = coerce_question_type(question_type)
    points_possible = _coerce_points(points_possible)
    try:
        tolerance = abs(float(tolerance))
    except (TypeError, ValueError):
        tolerance = config.math_tolerance

    limits = dict(config.grading_thresholds)
    if thresholds:
        limits.update(thresholds)

    student = normalize_answer(student_answer, question_type)
    candidates = [normalize_answer(correct_answer, question_type)]
    for variant in accepted_variants or []:
        candidates.append(normalize_answer(variant, question_type))

    grader = _GRADERS[question_type]
    is_correct, confidence, needs_review = grader(student, candidates, tolerance, limits)

    verdict = {
        'is_correct': is_correct,
        'confidence': confidence,
        'points_earned': points_possible if is_correct else 0,
        'needs_review': needs_review,
    }
    if needs_review:
        verdict['feedback'] = REVIEW_FEEDBACK
    return verdict


def _lookup_answer(student_answers: dict, number: int) -> str:
    """Student answers may be keyed by int or, straight from JSON, by str."""
    if number in student_answers:
        value = student_answers[number]
    else:
        value = student_answers.get(str(number), '')
    return '' if value is None else str(value)


def grade_answer_sheet(answer_key: list, student_answers: dict, tolerance=None) -> dict:
    """
    Grade a full answer sheet.

    Args:
        answer_key: Rows with question_number, correct_answer, accepted_variants,
            points and question_type (missing type is detected from the answer)
        student_answers: question_number -> raw student answer
        tolerance: Math tolerance passed to every question

    Returns:
        dict with per-question results, total_earned, total_possible,
        percentage and the number of answers needing review
    """
    student_answers = student_answers or {}
    rows = []
    for row in answer_key or []:
        try:
            number = int(row.get('question_number'))
        except (TypeError, ValueError, AttributeError):
            logger.warning("Skipping answer key row without a question number: %r", row)
            continue
        rows.append((number, row))
    rows.sort(key=lambda item: item[0])

    questions = []
    total_earned = 0
    total_possible = 0

    for number, row in rows:
        correct_answer = row.get('correct_answer')
        # Numeric keys such as 0 come straight from JSON
        correct_answer = '' if correct_answer is None else str(correct_answer)
        question_type = row.get('question_type') or detect_question_type(correct_answer)
        points = _coerce_points(row.get('points'))
        variants = row.get('accepted_variants')
        if not isinstance(variants, list):
            variants = []
        student_answer = _lookup_answer(student_answers, number)

        verdict = grade_question(
            student_answer, correct_answer, question_type,
            points_possible=points, accepted_variants=variants, tolerance=tolerance,
        )
        logger.debug("Q%d (%s): correct=%s confidence=%.2f review=%s",
                     number, question_type, verdict['is_correct'],
                     verdict['confidence'], verdict['needs_review'])

        questions.append({
            'question_number': number,
            'student_answer': student_answer,
            'correct_answer': correct_answer,
            'points_possible': points,
            'points_earned': verdict['points_earned'],
            'is_correct': verdict['is_correct'],
            'confidence': verdict['confidence'],
            'needs_review': verdict['needs_review'],
        })
        total_earned += verdict['points_earned']
        total_possible += points

    percentage = round((total_earned / total_possible) * 100) if total_possible > 0 else 0

    return {
        'questions': questions,
        'total_earned': total_earned,
        'total_possible': total_possible,
        'percentage': percentage,
        'needs_review': sum(1 for q in questions if q['needs_review']),
    }
