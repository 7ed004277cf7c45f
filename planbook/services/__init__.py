"""
Planbook Services
=================

Business logic for answer-sheet grading and lesson scheduling.

Services:
- answer_normalizer: Question-type-aware answer canonicalization
- answer_extractor: OCR text -> question number / answer pairs
- grading_service: Per-question verdicts and answer-sheet totals
- slot_finder: Next free calendar slot from weekly availability rules
"""

# Services are imported directly when needed
# Example: from planbook.services.grading_service import grade_question

__all__ = [
    'answer_normalizer',
    'answer_extractor',
    'grading_service',
    'slot_finder',
]
