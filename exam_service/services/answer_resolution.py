"""
Answer Resolution
Asks the resolution model for answer keys the PDF did not carry, then merges
them into the attempt's answers and finalizes the attempt exactly once.
"""
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from exam_service.context import AppContext
from exam_service.errors import ConflictError, NotFoundError, ValidationError
from exam_service.models.attempt import AttemptAnswer, CompletionResult
from exam_service.models.question import Question, OPTION_KEYS
from exam_service.services.extraction_parser import strip_code_fence
from exam_service.services.solve_prompts import build_solve_prompt
from exam_service.services import scoring

DEFAULT_BATCH_SIZE = 8
DEFAULT_SUBJECT = "AP_PSYCHOLOGY"

STAGE_JSON = "json"
STAGE_SCAN = "scan"
STAGE_NONE = "none"

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*?\]")
_QUOTED_LETTER_RE = re.compile(r"[\"']([A-E])[\"']")


@dataclass
class SolveParseResult:
    answers: List[Optional[str]]
    stage: str


@dataclass
class BatchReport:
    start: int
    size: int
    stage: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ResolutionReport:
    answers: Dict[str, str] = field(default_factory=dict)
    batches: List[BatchReport] = field(default_factory=list)


def _letter(value) -> Optional[str]:
    letter = str(value if value is not None else "").upper().strip()
    return letter if letter in OPTION_KEYS else None


def _pad(answers: List[Optional[str]], expected_count: int) -> List[Optional[str]]:
    answers = answers[:expected_count]
    return answers + [None] * (expected_count - len(answers))


def parse_solve_json(text: str, expected_count: int) -> Optional[List[Optional[str]]]:
    """Stage 1: the first JSON array in the response.

    None when there is no parsable array or the array holds no letter A-E, so
    a stray bracketed reference like `[1]` falls through to the quoted-letter scan.
    """
    match = _JSON_ARRAY_RE.search(strip_code_fence(text or ""))
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list):
        return None
    letters = _pad([_letter(a) for a in parsed], expected_count)
    if not any(letters):
        return None
    return letters


def scan_solve_letters(text: str, expected_count: int) -> Optional[List[Optional[str]]]:
    """Stage 2: quoted single letters A-E, in order of appearance"""
    letters = _QUOTED_LETTER_RE.findall(text or "")
    if not letters:
        return None
    return _pad(letters, expected_count)


def parse_solve_response(text: str, expected_count: int) -> SolveParseResult:
    answers = parse_solve_json(text, expected_count)
    if answers is not None:
        return SolveParseResult(answers=answers, stage=STAGE_JSON)

    answers = scan_solve_letters(text, expected_count)
    if answers is not None:
        print(f"Solve response was not a JSON array, recovered {sum(1 for a in answers if a)} letters by scanning")
        return SolveParseResult(answers=answers, stage=STAGE_SCAN)

    return SolveParseResult(answers=[None] * expected_count, stage=STAGE_NONE)


def needs_answer(question: Question) -> bool:
    return question.known_answer() is None


def resolve_unknown_answers(model, subject: str, questions: List[Question],
                            batch_size: int = DEFAULT_BATCH_SIZE) -> ResolutionReport:
    """
    Ask the model for the questions' answers in sequential batches.

    A failing batch is reported and left unresolved; later batches still run.
    """
    report = ResolutionReport()
    if model is None or not questions:
        return report

    for start in range(0, len(questions), batch_size):
        batch = questions[start:start + batch_size]
        batch_report = BatchReport(start=start, size=len(batch))
        report.batches.append(batch_report)

        try:
            text = model.generate(build_solve_prompt(subject, batch))
            result = parse_solve_response(text or "", len(batch))
        except Exception as e:
            print(f"Gemini solve batch error (questions {start + 1}-{start + len(batch)}): {e}")
            batch_report.error = str(e)
            continue

        batch_report.stage = result.stage
        for question, letter in zip(batch, result.answers):
            if letter:
                report.answers[question.id] = letter

    print(f"Resolved {len(report.answers)}/{len(questions)} unknown answers in {len(report.batches)} batches")
    return report


def complete_attempt(context: AppContext, attempt_id: Optional[str],
                     now: Optional[datetime] = None) -> CompletionResult:
    """Score an attempt once: resolve unknown keys, merge answers, finalize."""
    store = context.store
    if not attempt_id or not str(attempt_id).strip():
        raise ValidationError("attemptId is required.")

    attempt = store.get_attempt(attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt not found.")
    if attempt.completed_at is not None:
        raise ConflictError("Exam already completed.")

    upload = store.get_upload(attempt.upload_id)
    subject = upload.subject if upload and upload.subject else DEFAULT_SUBJECT

    questions = store.get_questions(attempt.upload_id)
    if not questions:
        raise ValidationError("No questions found.")

    unknown = [q for q in questions if needs_answer(q)]
    ai_answers: Dict[str, str] = {}
    if unknown and context.resolution_model is not None:
        batch_size = getattr(context.config, "SOLVE_BATCH_SIZE", DEFAULT_BATCH_SIZE)
        ai_answers = resolve_unknown_answers(context.resolution_model, subject, unknown, batch_size).answers

    questions_by_id = {q.id: q for q in questions}
    existing = store.get_attempt_answers(attempt_id)
    answered_ids = set()
    for answer in existing:
        answered_ids.add(answer.question_id)
        question = questions_by_id.get(answer.question_id)
        correct = scoring.resolved_answer(question, ai_answers) if question else None
        answer.ai_answer = ai_answers.get(answer.question_id)
        answer.is_correct = scoring.is_answer_correct(answer.user_answer, correct)
        store.update_answer_result(answer.id, answer.ai_answer, answer.is_correct)

    backfill = [
        AttemptAnswer(
            attempt_id=attempt_id,
            question_id=q.id,
            user_answer=None,
            ai_answer=ai_answers.get(q.id),
            is_correct=False,
        )
        for q in questions if q.id not in answered_ids
    ]
    store.insert_attempt_answers(backfill)

    final_answers = existing + backfill
    correct_count, incorrect_count, unanswered_count = scoring.tally_answers(final_answers)

    completed_at = now or datetime.now(timezone.utc)
    time_spent = scoring.elapsed_seconds(attempt.started_at, completed_at)

    finalized = store.finalize_attempt(
        attempt_id, completed_at, time_spent, correct_count, incorrect_count, unanswered_count
    )
    if not finalized:
        raise ConflictError("Exam already completed.")

    answers_by_question = {a.question_id: a for a in final_answers}
    return CompletionResult(
        total=len(questions),
        correct_count=correct_count,
        incorrect_count=incorrect_count,
        unanswered_count=unanswered_count,
        percentage=scoring.calculate_percentage(correct_count, len(questions)),
        time_spent_seconds=time_spent,
        breakdown=scoring.build_breakdown(questions, answers_by_question, ai_answers),
    )
