"""
Answer sheet scanner routes for Planbook.
Extracts answers from OCR text and grades them against an answer key.

OCR itself happens upstream; these endpoints receive the recognized text.
"""
import logging
from flask import Blueprint, request, jsonify

from planbook.services.answer_extractor import extract_answer_details, apply_manual_corrections
from planbook.services.answer_normalizer import detect_question_type
from planbook.services.grading_service import grade_answer_sheet

logger = logging.getLogger(__name__)

scanner_bp = Blueprint('scanner', __name__)


def _parse_count(value):
    """Non-negative int or None."""
    if isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


@scanner_bp.route('/api/scanner/extract', methods=['POST'])
def extract_answers_route():
    """Extract question/answer pairs from OCR text for the review screen."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    ocr_text = data.get('ocr_text')
    if not isinstance(ocr_text, str):
        return jsonify({"error": "ocr_text is required"}), 400

    expected_count = _parse_count(data.get('expected_count', 0))
    if expected_count is None:
        return jsonify({"error": "expected_count must be a non-negative integer"}), 400

    result = extract_answer_details(ocr_text, expected_count)

    corrections = data.get('corrections')
    if corrections:
        if not isinstance(corrections, dict):
            return jsonify({"error": "corrections must be an object"}), 400
        result = apply_manual_corrections(result, corrections)

    logger.info("Extracted %d answers (%d unmatched, %d low confidence)",
                len(result['answers']), len(result['unmatched']), result['low_confidence'])
    return jsonify(result)


@scanner_bp.route('/api/scanner/grade', methods=['POST'])
def grade_answers_route():
    """
    Grade a student's answer sheet.

    Accepts either already-extracted student_answers or the raw ocr_text,
    which is extracted with the answer key's length as the expected count.
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    answer_key = data.get('answer_key')
    if not isinstance(answer_key, list) or not answer_key:
        return jsonify({"error": "Answer key not found or empty"}), 400

    tolerance = data.get('tolerance')
    if tolerance is not None:
        try:
            tolerance = float(tolerance)
        except (TypeError, ValueError):
            return jsonify({"error": "tolerance must be a number"}), 400

    extraction = None
    student_answers = data.get('student_answers')
    if student_answers is None:
        ocr_text = data.get('ocr_text')
        if not isinstance(ocr_text, str):
            return jsonify({"error": "student_answers or ocr_text is required"}), 400
        extraction = extract_answer_details(ocr_text, len(answer_key))
        student_answers = extraction['answers']
    elif not isinstance(student_answers, dict):
        return jsonify({"error": "student_answers must be an object"}), 400

    try:
        results = grade_answer_sheet(answer_key, student_answers, tolerance=tolerance)
    except Exception as e:
        logger.error("Grading failed: %s", e)
        return jsonify({"error": str(e)}), 500

    response = {"results": results}
    if extraction is not None:
        response["extraction"] = {
            "unmatched": extraction['unmatched'],
            "low_confidence": extraction['low_confidence'],
        }
    logger.info("Graded sheet: %s/%s points, %d need review",
                results['total_earned'], results['total_possible'], results['needs_review'])
    return jsonify(response)


@scanner_bp.route('/api/scanner/detect-type', methods=['POST'])
def detect_type_route():
    """Guess the question type of an answer-key entry."""
    data = request.get_json(silent=True)
    if not data or 'answer' not in data:
        return jsonify({"error": "answer is required"}), 400
    return jsonify({"question_type": detect_question_type(data.get('answer'))})
