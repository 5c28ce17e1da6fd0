import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from exam_service.models.question import Question
from exam_service.models.attempt import AttemptAnswer, BreakdownItem


def normalize_letter(value: Optional[str]) -> Optional[str]:
    letter = (value or "").strip().upper()
    return letter or None


def is_answer_correct(user_answer: Optional[str], correct_answer: Optional[str]) -> bool:
    """An unanswered question, or one without a resolved key, is never correct"""
    user = normalize_letter(user_answer)
    correct = normalize_letter(correct_answer)
    return user is not None and correct is not None and user == correct


def tally_answers(answers: Iterable[AttemptAnswer]) -> Tuple[int, int, int]:
    """Return (correct, incorrect, unanswered)"""
    correct = incorrect = unanswered = 0
    for answer in answers:
        if normalize_letter(answer.user_answer) is None:
            unanswered += 1
        elif answer.is_correct:
            correct += 1
        else:
            incorrect += 1
    return correct, incorrect, unanswered


def calculate_percentage(correct_count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(math.floor(correct_count / total * 100 + 0.5))


def elapsed_seconds(started_at: Optional[datetime], completed_at: datetime) -> int:
    if started_at is None:
        return 0
    if started_at.tzinfo is None and completed_at.tzinfo is not None:
        started_at = started_at.replace(tzinfo=completed_at.tzinfo)
    elif completed_at.tzinfo is None and started_at.tzinfo is not None:
        completed_at = completed_at.replace(tzinfo=started_at.tzinfo)
    return max(0, int((completed_at - started_at).total_seconds()))


def resolved_answer(question: Question, ai_answers: Dict[str, str]) -> Optional[str]:
    return question.known_answer() or ai_answers.get(question.id)


def build_breakdown(questions: List[Question], answers_by_question: Dict[str, AttemptAnswer],
                    ai_answers: Dict[str, str]) -> List[BreakdownItem]:
    breakdown = []
    for question in questions:
        answer = answers_by_question.get(question.id)
        breakdown.append(BreakdownItem(
            question_number=question.question_number,
            user_answer=answer.user_answer if answer else None,
            correct_answer=resolved_answer(question, ai_answers),
            is_correct=answer.is_correct if answer else False,
        ))
    return breakdown
