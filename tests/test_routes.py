"""
Test: Flask API routes - scanner extraction/grading and calendar slot finding.
"""


class TestHealth:
    def test_ok(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"


class TestExtractRoute:
    def test_extracts_answers(self, client):
        response = client.post('/api/scanner/extract',
                               json={"ocr_text": "1. A\n2. B", "expected_count": 3})
        assert response.status_code == 200
        data = response.get_json()
        assert data["answers"] == {"1": "A", "2": "B"}
        assert data["unmatched"] == [3]
        assert data["low_confidence"] == 0

    def test_applies_corrections(self, client):
        response = client.post('/api/scanner/extract', json={
            "ocr_text": "1. A\n2. B", "expected_count": 3, "corrections": {"3": "C"},
        })
        data = response.get_json()
        assert data["answers"]["3"] == "C"
        assert data["unmatched"] == []

    def test_missing_text(self, client):
        response = client.post('/api/scanner/extract', json={"expected_count": 3})
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_bad_count(self, client):
        response = client.post('/api/scanner/extract',
                               json={"ocr_text": "1. A", "expected_count": "many"})
        assert response.status_code == 400

    def test_no_body(self, client):
        assert client.post('/api/scanner/extract').status_code == 400


class TestGradeRoute:
    def test_grades_extracted_answers(self, client, sample_answer_key):
        response = client.post('/api/scanner/grade', json={
            "answer_key": sample_answer_key,
            "student_answers": {"1": "a.", "2": "42.0"},
        })
        assert response.status_code == 200
        results = response.get_json()["results"]
        assert results["total_earned"] == 3
        assert results["total_possible"] == 3
        assert results["percentage"] == 100
        assert results["needs_review"] == 0

    def test_grades_from_ocr_text(self, client, sample_answer_key):
        response = client.post('/api/scanner/grade', json={
            "answer_key": sample_answer_key,
            "ocr_text": "1. B\n2. 42",
        })
        data = response.get_json()
        assert data["results"]["total_earned"] == 2
        assert data["extraction"] == {"unmatched": [], "low_confidence": 0}

    def test_empty_key(self, client):
        response = client.post('/api/scanner/grade',
                               json={"answer_key": [], "student_answers": {}})
        assert response.status_code == 400

    def test_needs_answers_or_text(self, client, sample_answer_key):
        response = client.post('/api/scanner/grade', json={"answer_key": sample_answer_key})
        assert response.status_code == 400

    def test_bad_tolerance(self, client, sample_answer_key):
        response = client.post('/api/scanner/grade', json={
            "answer_key": sample_answer_key, "student_answers": {}, "tolerance": "loose",
        })
        assert response.status_code == 400


class TestDetectTypeRoute:
    def test_detects(self, client):
        response = client.post('/api/scanner/detect-type', json={"answer": "3/4"})
        assert response.get_json() == {"question_type": "math"}

    def test_missing_answer(self, client):
        assert client.post('/api/scanner/detect-type', json={}).status_code == 400


class TestFindSlotRoute:
    def _post(self, client, **overrides):
        payload = {
            "subject": "Mathematics",
            "rules": [{
                "id": "rule-math-mon", "subject": "Math", "day_of_week": 1,
                "start_time": "09:00", "end_time": "10:00", "is_active": True,
            }],
            "bookings": [],
            "now": "2024-01-01T08:00:00",
        }
        payload.update(overrides)
        return client.post('/api/calendar/find-slot', json=payload)

    def test_schedules(self, client):
        data = self._post(client).get_json()
        assert data["success"] is True
        assert data["slot"]["start_time"] == "2024-01-01T09:00:00"
        assert data["slot"]["end_time"] == "2024-01-01T09:45:00"
        assert data["event"]["metadata"] == {"auto_scheduled": True, "schedule_rule_id": "rule-math-mon"}
        assert data["event"]["title"] == "Mathematics Lesson"
        assert data["message"] == "Scheduled for Monday at 9:00 AM"

    def test_custom_duration(self, client):
        data = self._post(client, duration=60).get_json()
        assert data["slot"]["end_time"] == "2024-01-01T10:00:00"

    def test_no_matching_rules(self, client):
        data = self._post(client, subject="Art").get_json()
        assert data["success"] is False
        assert data["needs_manual"] is True
        assert "No schedule rules found for Art" in data["reason"]

    def test_fully_booked(self, client):
        bookings = [
            {"start_time": "2024-01-01T09:00:00", "end_time": "2024-01-01T10:00:00"},
            {"start_time": "2024-01-08T09:00:00", "end_time": "2024-01-08T10:00:00"},
        ]
        data = self._post(client, bookings=bookings).get_json()
        assert data["success"] is False
        assert data["reason"] == "No available slots in the next 14 days"

    def test_missing_subject(self, client):
        assert self._post(client, subject="").status_code == 400

    def test_bad_now(self, client):
        assert self._post(client, now="yesterday-ish").status_code == 400

    def test_bad_duration(self, client):
        assert self._post(client, duration=0).status_code == 400

    def test_non_object_rules(self, client):
        response = self._post(client, rules=[1])
        assert response.status_code == 400
        assert "error" in response.get_json()
