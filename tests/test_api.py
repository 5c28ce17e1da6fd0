# tests/test_api.py
import json

from fastapi.testclient import TestClient

from conftest import FakeModel, make_pdf, seed_exam
from exam_service.app import create_app

OWNER = {"X-User-Email": "owner@example.com"}
OTHER = {"X-User-Email": "other@example.com"}

EXTRACTED = json.dumps([
    {"type": "text", "question": "What is the median of the data?", "options": ["1", "2", "3"], "correct": "B"},
    {"type": "text", "question": "Which plot shows skew?", "options": ["Box", "Dot"]},
])


def _analyze(client, **form):
    data = {"subject": "AP_STATISTICS", "questionCount": "5", "userEmail": "owner@example.com"}
    data.update(form)
    return client.post(
        "/api/upload/analyze",
        files={"file": ("stats.pdf", make_pdf(2), "application/pdf")},
        data=data,
    )


def test_health(make_client):
    response = make_client().get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_unconfigured_app_reports_configuration_error():
    client = TestClient(create_app())
    assert client.get("/health").json()["ok"] is False

    response = client.get("/api/exams/published")
    assert response.status_code == 500
    assert "not configured" in response.json()["error"]


def test_analyze_creates_exam_and_archives_pdf(make_client, store, storage):
    client = make_client(extraction_model=FakeModel([EXTRACTED]))

    response = _analyze(client)

    assert response.status_code == 200
    exam_id = response.json()["examId"]
    assert len(store.get_questions(exam_id)) == 2
    assert f"{exam_id}.pdf" in storage.objects
    assert store.get_upload(exam_id).storage_path == f"{exam_id}.pdf"


def test_analyze_validation_errors(make_client, store):
    client = make_client(extraction_model=FakeModel([EXTRACTED]))

    missing_user = _analyze(client, userEmail="")
    assert missing_user.status_code == 401
    assert missing_user.json() == {"error": "User email is required."}

    bad_subject = _analyze(client, subject="AP_BIOLOGY")
    assert bad_subject.status_code == 400

    bad_count = _analyze(client, questionCount="²")
    assert bad_count.status_code == 400
    assert bad_count.json() == {"error": "Question count must be a positive number."}

    no_file = client.post("/api/upload/analyze", data={"subject": "AP_STATISTICS", "questionCount": "5",
                                                         "userEmail": "owner@example.com"})
    assert no_file.json() == {"error": "No PDF file provided."}
    assert store.uploads == {}


def test_analyze_without_questions(make_client, store):
    response = _analyze(make_client(extraction_model=FakeModel(["[]"])))
    assert response.status_code == 422
    assert response.json() == {"error": "No questions found in the PDF."}
    assert store.uploads == {}


def test_analyze_bad_model_output(make_client):
    response = _analyze(make_client(extraction_model=FakeModel(["here are your questions"])))
    assert response.status_code == 502


def test_full_attempt_flow(make_client, store):
    upload_id = seed_exam(store, [{"correct_answer": "A"}, {}, {}])
    client = make_client(resolution_model=FakeModel(['["B", "C"]']))
    question_ids = [q.id for q in store.get_questions(upload_id)]

    start = client.post("/api/exam/start", json={"uploadId": upload_id, "userEmail": "owner@example.com"})
    attempt_id = start.json()["attemptId"]

    for question_id, letter in zip(question_ids[:2], ["A", "B"]):
        saved = client.post("/api/exam/answer", json={
            "attemptId": attempt_id, "questionId": question_id, "userAnswer": letter, "isFlagged": False,
        })
        assert saved.json() == {"ok": True}

    result = client.post("/api/exam/complete", json={"attemptId": attempt_id}).json()

    assert result["ok"] is True
    assert result["total"] == 3
    assert (result["correctCount"], result["incorrectCount"], result["unansweredCount"]) == (2, 0, 1)
    assert result["percentage"] == 67
    assert result["breakdown"][2] == {
        "questionNumber": 3, "userAnswer": None, "correctAnswer": "C", "isCorrect": False,
    }

    again = client.post("/api/exam/complete", json={"attemptId": attempt_id})
    assert again.status_code == 400
    assert again.json() == {"error": "Exam already completed."}

    late = client.post("/api/exam/answer", json={"attemptId": attempt_id, "questionId": question_ids[2],
                                                 "userAnswer": "A"})
    assert late.status_code == 400


def test_answer_validation(make_client, store):
    upload_id = seed_exam(store, [{}])
    client = make_client()
    attempt_id = client.post("/api/exam/start", json={"uploadId": upload_id,
                                                      "userEmail": "owner@example.com"}).json()["attemptId"]
    question_id = store.get_questions(upload_id)[0].id

    wrong_letter = client.post("/api/exam/answer", json={"attemptId": attempt_id, "questionId": question_id,
                                                         "userAnswer": "Z"})
    assert wrong_letter.json() == {"error": "userAnswer must be A, B, C, D, or E."}

    wrong_type = client.post("/api/exam/answer", json={"attemptId": attempt_id, "questionId": question_id,
                                                       "isFlagged": "maybe"})
    assert wrong_type.status_code == 400
    assert wrong_type.json() == {"error": "Invalid request body."}


def test_start_unpublished_exam_as_other_user(make_client, store):
    upload_id = seed_exam(store, [{}])
    response = make_client().post("/api/exam/start", json={"uploadId": upload_id,
                                                          "userEmail": "other@example.com"})
    assert response.status_code == 403


def test_owner_routes(make_client, store, storage):
    upload_id = seed_exam(store, [{}, {}], subject="AP_MICROECONOMICS")
    store.update_storage_path(upload_id, f"{upload_id}.pdf")
    client = make_client()

    assert client.get(f"/api/upload/{upload_id}").status_code == 401
    assert client.get(f"/api/upload/{upload_id}", headers=OTHER).status_code == 403
    assert client.get(f"/api/upload/{upload_id}", headers=OWNER).json()["url"].endswith("expires=3600")

    assert client.patch(f"/api/upload/{upload_id}/publish", json={"isPublished": True},
                        headers=OTHER).status_code == 403
    published = client.patch(f"/api/upload/{upload_id}/publish", json={"isPublished": True}, headers=OWNER)
    assert published.json() == {"success": True, "isPublished": True}

    exams = client.get("/api/exams/published", params={"subject": "AP_MICROECONOMICS"}).json()["exams"]
    assert [e["id"] for e in exams] == [upload_id]
    assert exams[0]["questionCount"] == 2

    view = client.get(f"/api/exams/{upload_id}/questions", headers=OTHER).json()
    assert view["upload"]["hasPdf"] is True
    assert len(view["questions"]) == 2

    assert client.delete(f"/api/upload/{upload_id}", headers=OTHER).status_code == 403
    assert client.delete(f"/api/upload/{upload_id}", headers=OWNER).json() == {"ok": True}
    assert storage.removed == [f"{upload_id}.pdf"]
    assert client.get(f"/api/exams/{upload_id}/questions", headers=OWNER).status_code == 404


def test_explain(make_client):
    client = make_client(resolution_model=FakeModel(["Because 7 has no divisors."]))
    response = client.post("/api/exam/explain", json={
        "questionText": "Which is prime?", "options": ["4", "7"], "correctAnswer": "b",
    })
    assert response.json() == {"explanation": "Because 7 has no divisors."}

    missing = client.post("/api/exam/explain", json={"questionText": " "})
    assert missing.status_code == 400


def test_explain_without_model(make_client):
    response = make_client().post("/api/exam/explain", json={"questionText": "Which is prime?"})
    assert response.status_code == 500
    assert response.json() == {"error": "GEMINI_API_KEY is not set."}
