from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class Attempt(BaseModel):
    id: str
    user_email: str
    upload_id: str
    total_questions: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_spent_seconds: Optional[int] = None
    correct_count: Optional[int] = None
    incorrect_count: Optional[int] = None
    unanswered_count: Optional[int] = None


class AttemptAnswer(BaseModel):
    id: Optional[str] = None
    attempt_id: str
    question_id: str
    user_answer: Optional[str] = None
    is_flagged: bool = False
    ai_answer: Optional[str] = None
    is_correct: bool = False
    answered_at: Optional[datetime] = None


class BreakdownItem(BaseModel):
    question_number: int
    user_answer: Optional[str] = None
    correct_answer: Optional[str] = None
    is_correct: bool = False

    def to_response(self) -> dict:
        return {
            "questionNumber": self.question_number,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
        }


class CompletionResult(BaseModel):
    total: int
    correct_count: int
    incorrect_count: int
    unanswered_count: int
    percentage: int
    time_spent_seconds: int
    breakdown: List[BreakdownItem] = Field(default_factory=list)

    def to_response(self) -> dict:
        return {
            "ok": True,
            "total": self.total,
            "correctCount": self.correct_count,
            "incorrectCount": self.incorrect_count,
            "unansweredCount": self.unanswered_count,
            "percentage": self.percentage,
            "timeSpentSeconds": self.time_spent_seconds,
            "breakdown": [item.to_response() for item in self.breakdown],
        }
