from typing import Any, Dict, List, Optional

from exam_service.errors import AuthenticationError, ExamServiceError, ForbiddenError, NotFoundError, ValidationError
from exam_service.models.upload import Upload
from exam_service.services.question_view import build_question_view
from exam_service.services.subject_prompts import is_valid_subject


def _load_upload(store, upload_id: Optional[str], user_email: Optional[str]) -> Upload:
    if not (upload_id or "").strip():
        raise ValidationError("Upload ID is required.")
    if not (user_email or "").strip():
        raise AuthenticationError("Authentication required. Please sign in again.")
    upload = store.get_upload(upload_id.strip())
    if upload is None:
        raise NotFoundError("Exam not found.")
    return upload


def set_published(store, upload_id: str, user_email: Optional[str], is_published: bool) -> bool:
    upload = _load_upload(store, upload_id, user_email)
    if not upload.is_owned_by(user_email):
        raise ForbiddenError("You can only publish your own exams.")
    store.set_published(upload.id, bool(is_published))
    return bool(is_published)


def delete_upload(store, storage, upload_id: str, user_email: Optional[str]):
    """Owner-only delete; questions, attempts and answers cascade"""
    upload = _load_upload(store, upload_id, user_email)
    if not upload.is_owned_by(user_email):
        raise ForbiddenError("You can only delete your own exams.")

    if storage is not None and upload.has_archived_pdf():
        try:
            storage.remove(upload.storage_path)
        except Exception as e:
            print(f"Failed to remove archived PDF {upload.storage_path}: {e}")

    store.delete_upload(upload.id)
    print(f"Deleted upload {upload.id}")


def get_pdf_url(store, storage, upload_id: str, user_email: Optional[str], expires_in: int) -> str:
    upload = _load_upload(store, upload_id, user_email)
    if not upload.is_owned_by(user_email) and not upload.is_published:
        raise ForbiddenError("You can only access your own exams or published exams.")
    if not upload.has_archived_pdf() or storage is None:
        raise NotFoundError("PDF not available for this exam.")

    try:
        url = storage.create_signed_url(upload.storage_path, expires_in)
    except Exception as e:
        print(f"Signed URL error: {e}")
        url = None
    if not url:
        raise ExamServiceError("Could not generate PDF link. Please try again.")
    return url


def list_published(store, subject: Optional[str] = None) -> List[Dict[str, Any]]:
    subject = (subject or "").strip()
    rows = store.list_published_uploads(subject if is_valid_subject(subject) else None)
    return [
        {
            "id": row["id"],
            "filename": row.get("filename") or "PDF",
            "subject": row.get("subject"),
            "questionCount": int(row.get("question_count") or 0),
            "createdAt": row["created_at"].isoformat() if row.get("created_at") else None,
        }
        for row in rows
    ]


def list_questions_for_viewer(store, upload_id: str, user_email: Optional[str]) -> Dict[str, Any]:
    upload = _load_upload(store, upload_id, user_email)
    if not upload.is_owned_by(user_email) and not upload.is_published:
        raise ForbiddenError("You can only access your own exams or published exams.")

    questions = store.get_questions(upload.id)
    return {
        "upload": {
            "id": upload.id,
            "filename": upload.filename,
            "subject": upload.subject,
            "hasPdf": upload.has_archived_pdf(),
            "isPublished": upload.is_published,
        },
        "questions": [build_question_view(q, upload) for q in questions],
    }
