from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from exam_service.api.dependencies import get_context, get_user_email
from exam_service.context import AppContext
from exam_service.pipelines.extraction_pipeline import ExtractionRequest, run_extraction_pipeline
from exam_service.services import upload_service

router = APIRouter()


class PublishRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_published: bool = Field(False, alias="isPublished")


@router.post("/api/upload/analyze")
async def analyze_upload(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    subject: Optional[str] = Form(None),
    questionCount: Optional[str] = Form(None),
    userEmail: Optional[str] = Form(None),
    context: AppContext = Depends(get_context),
):
    """Extract questions from an uploaded PDF and save them as a new exam"""
    data = await file.read() if file is not None else None
    request = ExtractionRequest(
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        data=data,
        subject=subject,
        question_count=questionCount,
        user_email=userEmail,
    )
    outcome = await run_in_threadpool(
        run_extraction_pipeline, context, request, schedule=background_tasks.add_task
    )
    return {"examId": outcome.upload_id}


@router.get("/api/upload/{upload_id}")
def get_upload_pdf_url(
    upload_id: str,
    user_email: Optional[str] = Depends(get_user_email),
    context: AppContext = Depends(get_context),
):
    """Signed URL for the archived exam PDF (owner or published)"""
    url = upload_service.get_pdf_url(
        context.store, context.storage, upload_id, user_email, context.config.SIGNED_URL_EXPIRY_SEC
    )
    return {"url": url}


@router.delete("/api/upload/{upload_id}")
def delete_upload(
    upload_id: str,
    user_email: Optional[str] = Depends(get_user_email),
    context: AppContext = Depends(get_context),
):
    upload_service.delete_upload(context.store, context.storage, upload_id, user_email)
    return {"ok": True}


@router.patch("/api/upload/{upload_id}/publish")
def toggle_publish(
    upload_id: str,
    body: PublishRequest,
    user_email: Optional[str] = Depends(get_user_email),
    context: AppContext = Depends(get_context),
):
    is_published = upload_service.set_published(context.store, upload_id, user_email, body.is_published)
    return {"success": True, "isPublished": is_published}


@router.get("/api/exams/published")
def published_exams(subject: Optional[str] = None, context: AppContext = Depends(get_context)):
    """Published exams, newest first. Anonymous callers allowed."""
    return {"exams": upload_service.list_published(context.store, subject)}


@router.get("/api/exams/{upload_id}/questions")
def exam_questions(
    upload_id: str,
    user_email: Optional[str] = Depends(get_user_email),
    context: AppContext = Depends(get_context),
):
    return upload_service.list_questions_for_viewer(context.store, upload_id, user_email)
