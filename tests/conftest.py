import io
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import PyPDF2
import pytest
from fastapi.testclient import TestClient

from exam_service.app import create_app
from exam_service.config import Config
from exam_service.context import AppContext
from exam_service.errors import PersistenceError
from exam_service.models.attempt import Attempt, AttemptAnswer
from exam_service.models.question import Question
from exam_service.models.upload import Upload

TEST_ENV = {
    "GEMINI_API_KEY": "test-key",
    "DATABASE_URL": "postgresql://localhost/test",
}


class InMemoryExamStore:
    """Same interface as ExamStore, backed by dicts."""

    def __init__(self):
        self.uploads: Dict[str, Upload] = {}
        self.questions: Dict[str, Question] = {}
        self.attempts: Dict[str, Attempt] = {}
        self.answers: Dict[str, AttemptAnswer] = {}
        self.fail_question_insert = False
        self.finalize_calls = 0

    def create_upload(self, user_email, filename, subject, storage_path, original_text):
        upload_id = str(uuid.uuid4())
        self.uploads[upload_id] = Upload(
            id=upload_id, user_email=user_email, filename=filename, subject=subject,
            storage_path=storage_path, original_text=original_text,
            created_at=datetime.now(timezone.utc),
        )
        return upload_id

    def get_upload(self, upload_id):
        upload = self.uploads.get(upload_id)
        return upload.model_copy() if upload else None

    def update_storage_path(self, upload_id, storage_path):
        self.uploads[upload_id].storage_path = storage_path

    def set_published(self, upload_id, is_published):
        self.uploads[upload_id].is_published = is_published

    def delete_upload(self, upload_id):
        self.uploads.pop(upload_id, None)
        attempt_ids = [a.id for a in self.attempts.values() if a.upload_id == upload_id]
        self.questions = {k: q for k, q in self.questions.items() if q.upload_id != upload_id}
        self.attempts = {k: a for k, a in self.attempts.items() if a.upload_id != upload_id}
        self.answers = {k: a for k, a in self.answers.items() if a.attempt_id not in attempt_ids}

    def list_published_uploads(self, subject=None):
        rows = []
        for upload in sorted(self.uploads.values(), key=lambda u: u.created_at, reverse=True):
            if not upload.is_published or (subject and upload.subject != subject):
                continue
            rows.append({
                "id": upload.id,
                "filename": upload.filename,
                "subject": upload.subject,
                "created_at": upload.created_at,
                "question_count": len(self.get_questions(upload.id)),
            })
        return rows

    def insert_questions(self, upload_id, questions: List[Question]):
        if self.fail_question_insert:
            raise PersistenceError()
        for q in questions:
            question_id = str(uuid.uuid4())
            self.questions[question_id] = q.model_copy(update={"id": question_id, "upload_id": upload_id})

    def get_questions(self, upload_id):
        found = [q.model_copy() for q in self.questions.values() if q.upload_id == upload_id]
        return sorted(found, key=lambda q: q.question_number)

    def get_question(self, question_id):
        q = self.questions.get(question_id)
        return q.model_copy() if q else None

    def create_attempt(self, user_email, upload_id, total_questions, started_at=None):
        attempt_id = str(uuid.uuid4())
        self.attempts[attempt_id] = Attempt(
            id=attempt_id, user_email=user_email, upload_id=upload_id,
            total_questions=total_questions,
            started_at=started_at or datetime.now(timezone.utc),
        )
        return attempt_id

    def get_attempt(self, attempt_id):
        attempt = self.attempts.get(attempt_id)
        return attempt.model_copy() if attempt else None

    def finalize_attempt(self, attempt_id, completed_at, time_spent_seconds,
                         correct_count, incorrect_count, unanswered_count):
        self.finalize_calls += 1
        attempt = self.attempts[attempt_id]
        if attempt.completed_at is not None:
            return False
        attempt.completed_at = completed_at
        attempt.time_spent_seconds = time_spent_seconds
        attempt.correct_count = correct_count
        attempt.incorrect_count = incorrect_count
        attempt.unanswered_count = unanswered_count
        return True

    def get_attempt_answers(self, attempt_id):
        return [a.model_copy() for a in self.answers.values() if a.attempt_id == attempt_id]

    def _find_answer(self, attempt_id, question_id) -> Optional[AttemptAnswer]:
        for answer in self.answers.values():
            if answer.attempt_id == attempt_id and answer.question_id == question_id:
                return answer
        return None

    def upsert_attempt_answer(self, attempt_id, question_id, user_answer, is_flagged, is_correct, answered_at):
        existing = self._find_answer(attempt_id, question_id)
        if existing:
            existing.user_answer = user_answer
            existing.is_flagged = is_flagged
            existing.is_correct = is_correct
            existing.answered_at = answered_at
            return
        answer_id = str(uuid.uuid4())
        self.answers[answer_id] = AttemptAnswer(
            id=answer_id, attempt_id=attempt_id, question_id=question_id, user_answer=user_answer,
            is_flagged=is_flagged, is_correct=is_correct, answered_at=answered_at,
        )

    def update_answer_result(self, answer_id, ai_answer, is_correct):
        self.answers[answer_id].ai_answer = ai_answer
        self.answers[answer_id].is_correct = is_correct

    def insert_attempt_answers(self, answers):
        for answer in answers:
            if self._find_answer(answer.attempt_id, answer.question_id):
                continue
            answer_id = str(uuid.uuid4())
            self.answers[answer_id] = answer.model_copy(update={"id": answer_id})


class FakeModel:
    """Scripted stand-in for GeminiModel. Exceptions in `responses` are raised."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def generate(self, prompt, system_instruction=None, pdf_bytes=None):
        self.calls.append({"prompt": prompt, "system_instruction": system_instruction, "pdf_bytes": pdf_bytes})
        response = self.responses.pop(0) if self.responses else None
        if isinstance(response, Exception):
            raise response
        return response


class FakeStorage:
    def __init__(self, fail=False):
        self.fail = fail
        self.objects: Dict[str, bytes] = {}
        self.removed: List[str] = []

    def upload(self, path, data, content_type="application/pdf"):
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.objects[path] = data
        return path

    def remove(self, path):
        self.removed.append(path)
        self.objects.pop(path, None)

    def create_signed_url(self, path, expires_in):
        return f"https://storage.test/{path}?expires={expires_in}"


def seed_exam(store: InMemoryExamStore, questions: List[dict], subject="AP_STATISTICS",
              owner="owner@example.com", published=False, storage_path=None) -> str:
    upload_id = store.create_upload(owner, "exam.pdf", subject, storage_path, "[]")
    store.uploads[upload_id].is_published = published
    rows = []
    for i, fields in enumerate(questions):
        data = {"question_text": f"Question {i + 1}?", "option_a": "a", "option_b": "b"}
        data.update(fields)
        rows.append(Question(question_number=i + 1, **data))
    store.insert_questions(upload_id, rows)
    return upload_id


@pytest.fixture
def config():
    return Config(env=TEST_ENV)


@pytest.fixture
def store():
    return InMemoryExamStore()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def make_context(config, store, storage):
    def _make(extraction_model=None, resolution_model=None, storage_client=storage):
        return AppContext(
            config=config,
            store=store,
            extraction_model=extraction_model,
            resolution_model=resolution_model,
            storage=storage_client,
        )
    return _make


@pytest.fixture
def make_client(make_context):
    def _make(**kwargs):
        return TestClient(create_app(make_context(**kwargs)))
    return _make


def make_pdf(pages=2) -> bytes:
    writer = PyPDF2.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
