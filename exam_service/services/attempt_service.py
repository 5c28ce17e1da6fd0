from datetime import datetime, timezone
from typing import Optional

from exam_service.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from exam_service.models.question import OPTION_KEYS
from exam_service.services.scoring import is_answer_correct


def normalize_user_answer(value) -> Optional[str]:
    """Blank means unanswered; anything else must be one of A-E"""
    if value is None or str(value).strip() == "":
        return None
    letter = str(value).upper().strip()
    if letter not in OPTION_KEYS:
        raise ValidationError("userAnswer must be A, B, C, D, or E.")
    return letter


def start_attempt(store, upload_id: Optional[str], user_email: Optional[str]) -> str:
    """Start a timed attempt; only the owner may start an unpublished exam"""
    upload_id = (upload_id or "").strip()
    user_email = (user_email or "").strip()
    if not upload_id or not user_email:
        raise ValidationError("uploadId and userEmail are required.")

    upload = store.get_upload(upload_id)
    if upload is None:
        raise NotFoundError("Exam not found.")
    if not upload.is_owned_by(user_email) and not upload.is_published:
        raise ForbiddenError("This exam is not published. Only the owner can start it.")

    questions = store.get_questions(upload_id)
    if not questions:
        raise ValidationError("No questions found for this exam.")

    attempt_id = store.create_attempt(user_email, upload_id, len(questions))
    print(f"Attempt {attempt_id} started on upload {upload_id} ({len(questions)} questions)")
    return attempt_id


def submit_answer(store, attempt_id: Optional[str], question_id: Optional[str],
                  user_answer, is_flagged: bool = False, now: Optional[datetime] = None):
    """Save (or overwrite) the single answer row for an attempt/question pair"""
    attempt_id = (attempt_id or "").strip()
    question_id = (question_id or "").strip()
    if not attempt_id or not question_id:
        raise ValidationError("attemptId and questionId are required.")

    letter = normalize_user_answer(user_answer)

    attempt = store.get_attempt(attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt not found.")
    if attempt.completed_at is not None:
        raise ConflictError("Exam already completed.")

    question = store.get_question(question_id)
    if question is None or question.upload_id != attempt.upload_id:
        raise NotFoundError("Question not found.")

    store.upsert_attempt_answer(
        attempt_id=attempt_id,
        question_id=question_id,
        user_answer=letter,
        is_flagged=bool(is_flagged),
        is_correct=is_answer_correct(letter, question.known_answer()),
        answered_at=now or datetime.now(timezone.utc),
    )
