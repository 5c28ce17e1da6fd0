# tests/test_scoring.py
from datetime import datetime, timedelta, timezone

from exam_service.models.attempt import AttemptAnswer
from exam_service.models.question import Question
from exam_service.services.scoring import (
    build_breakdown, calculate_percentage, elapsed_seconds, is_answer_correct,
    resolved_answer, tally_answers,
)


def _answer(user_answer, is_correct=False, question_id="q1"):
    return AttemptAnswer(attempt_id="a1", question_id=question_id, user_answer=user_answer, is_correct=is_correct)


def test_is_answer_correct():
    assert is_answer_correct("b", "B")
    assert not is_answer_correct("A", "B")
    assert not is_answer_correct(None, "A")
    assert not is_answer_correct("A", None)


def test_tally_answers():
    answers = [_answer("A", True), _answer("B", False), _answer(None), _answer("  ")]
    assert tally_answers(answers) == (1, 1, 2)


def test_calculate_percentage_rounds_half_up():
    assert calculate_percentage(1, 8) == 13
    assert calculate_percentage(2, 3) == 67
    assert calculate_percentage(1, 3) == 33
    assert calculate_percentage(0, 0) == 0
    assert calculate_percentage(5, 5) == 100


def test_elapsed_seconds():
    start = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert elapsed_seconds(start, start + timedelta(minutes=2, seconds=5)) == 125
    assert elapsed_seconds(start, start - timedelta(seconds=30)) == 0
    assert elapsed_seconds(None, start) == 0
    assert elapsed_seconds(start.replace(tzinfo=None), start + timedelta(seconds=9)) == 9


def test_breakdown_prefers_known_key_over_ai_answer():
    questions = [
        Question(id="q1", question_number=1, question_text="One?", correct_answer="C"),
        Question(id="q2", question_number=2, question_text="Two?"),
        Question(id="q3", question_number=3, question_text="Three?"),
    ]
    ai_answers = {"q1": "A", "q2": "D"}
    answers = {"q1": _answer("C", True, "q1"), "q2": _answer("D", True, "q2")}

    assert resolved_answer(questions[0], ai_answers) == "C"
    items = build_breakdown(questions, answers, ai_answers)

    assert [i.to_response() for i in items] == [
        {"questionNumber": 1, "userAnswer": "C", "correctAnswer": "C", "isCorrect": True},
        {"questionNumber": 2, "userAnswer": "D", "correctAnswer": "D", "isCorrect": True},
        {"questionNumber": 3, "userAnswer": None, "correctAnswer": None, "isCorrect": False},
    ]
