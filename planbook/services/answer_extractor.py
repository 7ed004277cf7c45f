"""
OCR Answer Extraction
=====================
Turns raw OCR text from a scanned answer sheet into question number -> answer.

Scan quality varies a lot, so extraction runs as a cascade of tiers. Each
tier only runs when the previous ones found too few answers, and answers
found by an earlier, more specific tier are never overwritten:

1. Line patterns   - one "<number> <answer>" pair per line (confidence 0.85)
2. Inline pairs    - "<number><letter>" pairs anywhere in the text (0.7)
3. Sequential      - bare A-E letters assigned to questions 1, 2, 3... (0.6)
"""

import logging
import re

from planbook.config import config, MAX_QUESTION_NUMBER, MAX_LINE_LENGTH
from planbook.services.answer_normalizer import detect_question_type

logger = logging.getLogger(__name__)

SOURCE_PATTERN = 'pattern'
SOURCE_INLINE = 'inline'
SOURCE_SEQUENTIAL = 'sequential'
SOURCE_MANUAL = 'manual'

TIER_CONFIDENCE = {
    SOURCE_PATTERN: 0.85,
    SOURCE_INLINE: 0.7,
    SOURCE_SEQUENTIAL: 0.6,
    SOURCE_MANUAL: 1.0,
}


# =============================================================================
# PATTERNS
# =============================================================================
# Ordered from most to least specific. The first pattern that matches a line
# decides it, even if the question number is then rejected.

LINE_PATTERNS = [
    # "12. B", "12) B", "12: B", "12 B", "12B"
    ('numbered_letter', re.compile(r'^(\d+)\s*[.):]?\s*([a-e])$', re.IGNORECASE)),
    # "12. True", "12 F", "12) yes"
    ('numbered_true_false',
     re.compile(r'^(\d+)\s*[.):\-]?\s*(true|false|t|f|yes|no)$', re.IGNORECASE)),
    # "Q12: B", "Q3. photosynthesis", "#12 B"
    ('prefixed_number',
     re.compile(r'^(?:q|#)\s*(\d+)(?:\s*[.):=\-]\s*|\s+)(.+)$', re.IGNORECASE)),
    # "12 = B", "12 - B"
    ('equals_or_dash_letter', re.compile(r'^(\d+)\s*[=\-]\s*([a-e])$', re.IGNORECASE)),
    # "(12) (b)", "12 (b)", "(12) b"
    ('parenthesized_letter',
     re.compile(r'^\(?(\d+)\)?\s*[.:\-]?\s*\(?([a-e])\)?$', re.IGNORECASE)),
    # "12. any answer text", "12 any answer text"
    ('numbered_text', re.compile(r'^(\d+)(?:\s*[.):=\-]\s*|\s+)(.+)$')),
]

_INLINE_PAIR = re.compile(r'(\d+)\s*[.):\-]?\s*([a-e])\b', re.IGNORECASE)
_STANDALONE_LETTER = re.compile(r'(?<![A-Za-z0-9])[A-Ea-e](?![A-Za-z0-9])')


def match_answer_line(line: str):
    """
    Match a single trimmed OCR line against LINE_PATTERNS.

    Returns:
        (pattern_name, question_number, answer_text) for the first matching
        pattern, or None if no pattern matches
    """
    for name, pattern in LINE_PATTERNS:
        match = pattern.match(line)
        if match:
            return name, int(match.group(1)), match.group(2).strip()
    return None


# =============================================================================
# TIERS
# =============================================================================

def _record(number: int, answer: str, source: str) -> dict:
    return {
        'question_number': number,
        'answer': answer,
        'confidence': TIER_CONFIDENCE[source],
        'source': source,
        'question_type': detect_question_type(answer),
    }


def _line_pattern_tier(text: str, found: dict):
    for raw_line in text.split('\n'):
        line = raw_line.strip()
        if not line or len(line) > MAX_LINE_LENGTH:
            continue

        matched = match_answer_line(line)
        if matched is None:
            continue

        name, number, answer = matched
        if not 1 <= number <= MAX_QUESTION_NUMBER or not answer:
            continue
        if number in found:
            # First occurrence wins
            continue
        found[number] = _record(number, answer, SOURCE_PATTERN)
        logger.debug("Matched Q%d via %s: %r", number, name, answer)


def _inline_pair_tier(text: str, expected_count: int, found: dict):
    flattened = text.replace('\n', ' ')
    for match in _INLINE_PAIR.finditer(flattened):
        number = int(match.group(1))
        if not 1 <= number <= expected_count or number in found:
            continue
        found[number] = _record(number, match.group(2).upper(), SOURCE_INLINE)


def _sequential_tier(text: str, expected_count: int, found: dict):
    letters = _STANDALONE_LETTER.findall(text)
    if len(letters) < expected_count / 2:
        return
    for index, letter in enumerate(letters[:expected_count]):
        number = index + 1
        if number not in found:
            found[number] = _record(number, letter.upper(), SOURCE_SEQUENTIAL)


def _run_cascade(ocr_text, expected_count) -> dict:
    text = '' if ocr_text is None else str(ocr_text)
    try:
        expected_count = int(expected_count)
    except (TypeError, ValueError):
        expected_count = 0

    found = {}
    _line_pattern_tier(text, found)

    if len(found) < expected_count / 2:
        logger.debug("Line patterns found %d of %d answers, scanning inline pairs",
                     len(found), expected_count)
        _inline_pair_tier(text, expected_count, found)

    if len(found) < expected_count / 3:
        logger.debug("Still only %d of %d answers, trying sequential letters",
                     len(found), expected_count)
        _sequential_tier(text, expected_count, found)

    return found


# =============================================================================
# PUBLIC API
# =============================================================================

def extract_answers(ocr_text, expected_count) -> dict:
    """
    Extract student answers from OCR text.

    Args:
        ocr_text: Full OCR text of the answer sheet
        expected_count: Number of questions on the answer key

    Returns:
        Sparse dict of question_number -> raw answer text (empty if nothing found)
    """
    found = _run_cascade(ocr_text, expected_count)
    return {number: found[number]['answer'] for number in sorted(found)}


def _summarize(found: dict, expected_count: int) -> dict:
    details = [found[number] for number in sorted(found)]
    threshold = config.low_confidence_threshold
    return {
        'answers': {r['question_number']: r['answer'] for r in details},
        'details': details,
        'expected_count': expected_count,
        'unmatched': [n for n in range(1, expected_count + 1) if n not in found],
        'low_confidence': sum(1 for r in details if r['confidence'] < threshold),
    }


def extract_answer_details(ocr_text, expected_count) -> dict:
    """
    Extract answers along with the numbers the review screen warns about.

    Returns:
        dict with 'answers' (same mapping as extract_answers), 'details'
        (one record per answer with confidence, source and question_type),
        'expected_count', 'unmatched' (question numbers with no answer) and
        'low_confidence' (count of answers below the configured threshold)
    """
    found = _run_cascade(ocr_text, expected_count)
    try:
        expected_count = max(int(expected_count), 0)
    except (TypeError, ValueError):
        expected_count = 0
    return _summarize(found, expected_count)


def apply_manual_corrections(extraction: dict, corrections: dict) -> dict:
    """
    Apply teacher corrections from the review screen to an extraction result.

    Corrected answers are marked source='manual' with full confidence. A blank
    correction removes the extracted answer for that question.
    """
    found = {r['question_number']: dict(r) for r in extraction.get('details', [])}

    for key, answer in (corrections or {}).items():
        try:
            number = int(key)
        except (TypeError, ValueError):
            logger.warning("Ignoring correction for invalid question number %r", key)
            continue
        answer = '' if answer is None else str(answer).strip()
        if not answer:
            found.pop(number, None)
            continue
        found[number] = _record(number, answer, SOURCE_MANUAL)

    return _summarize(found, extraction.get('expected_count', 0))
