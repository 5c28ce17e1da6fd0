from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from exam_service.api.dependencies import get_context
from exam_service.context import AppContext
from exam_service.services import attempt_service
from exam_service.services.answer_resolution import complete_attempt
from exam_service.services.explanation_service import explain_answer

router = APIRouter(prefix="/api/exam")


class StartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_id: Optional[str] = Field(None, alias="uploadId")
    user_email: Optional[str] = Field(None, alias="userEmail")


class AnswerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    attempt_id: Optional[str] = Field(None, alias="attemptId")
    question_id: Optional[str] = Field(None, alias="questionId")
    user_answer: Optional[str] = Field(None, alias="userAnswer")
    is_flagged: bool = Field(False, alias="isFlagged")


class CompleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    attempt_id: Optional[str] = Field(None, alias="attemptId")


class ExplainRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_text: Optional[str] = Field(None, alias="questionText")
    passage_text: Optional[str] = Field(None, alias="passageText")
    options: List[Optional[str]] = Field(default_factory=list)
    correct_answer: Optional[str] = Field(None, alias="correctAnswer")


@router.post("/start")
def start_exam(body: StartRequest, context: AppContext = Depends(get_context)):
    attempt_id = attempt_service.start_attempt(context.store, body.upload_id, body.user_email)
    return {"attemptId": attempt_id}


@router.post("/answer")
def save_answer(body: AnswerRequest, context: AppContext = Depends(get_context)):
    attempt_service.submit_answer(
        context.store, body.attempt_id, body.question_id, body.user_answer, body.is_flagged
    )
    return {"ok": True}


@router.post("/complete")
def complete_exam(body: CompleteRequest, context: AppContext = Depends(get_context)):
    """Resolve missing answer keys, score the attempt and finalize it"""
    result = complete_attempt(context, body.attempt_id)
    return result.to_response()


@router.post("/explain")
def explain(body: ExplainRequest, context: AppContext = Depends(get_context)):
    explanation = explain_answer(
        context.resolution_model, body.question_text, body.passage_text, body.options, body.correct_answer
    )
    return {"explanation": explanation}
