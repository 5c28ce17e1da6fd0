"""
Extraction Pipeline
Validating -> Prompting -> Parsing -> Persisting -> Archiving -> Done,
with Failed reachable from any hard error. Nothing is persisted unless
parsing produced at least one question, and a failed question insert
removes the upload row again.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from exam_service.context import AppContext
from exam_service.document.validator import is_pdf_content_type, count_pdf_pages
from exam_service.errors import (
    AuthenticationError, ConfigurationError, ExamServiceError, NoQuestionsFoundError,
    PersistenceError, UpstreamModelError, ValidationError,
)
from exam_service.models.question import Question
from exam_service.models.upload import PENDING_PREFIX
from exam_service.services.extraction_parser import parse_extraction_response
from exam_service.services.subject_prompts import (
    build_extraction_prompt, get_system_prompt, is_valid_subject,
)


class ExtractionState(str, Enum):
    VALIDATING = "validating"
    PROMPTING = "prompting"
    PARSING = "parsing"
    PERSISTING = "persisting"
    ARCHIVING = "archiving"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExtractionRequest:
    filename: Optional[str]
    content_type: Optional[str]
    data: Optional[bytes]
    subject: Optional[str]
    question_count: Any
    user_email: Optional[str]


@dataclass
class ExtractionOutcome:
    upload_id: str
    question_count: int
    states: List[ExtractionState] = field(default_factory=list)


def parse_question_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    text = str(value if value is not None else "").strip()
    if not text.isdecimal():
        return None
    try:
        count = int(text)
    except ValueError:
        return None
    return count if count >= 1 else None


def archive_pdf(context: AppContext, upload_id: str, data: bytes) -> Optional[str]:
    """Best-effort: store the PDF for page rendering. Never raises."""
    if context.storage is None:
        print(f"Storage not configured, upload {upload_id} keeps no PDF reference")
        return None
    path = f"{upload_id}.pdf"
    try:
        context.storage.upload(path, data)
        context.store.update_storage_path(upload_id, path)
        return path
    except Exception as e:
        print(f"PDF archive failed for upload {upload_id}: {e}")
        return None


class ExtractionPipeline:
    def __init__(self, context: AppContext, schedule: Optional[Callable[..., Any]] = None):
        self.context = context
        self.schedule = schedule
        self.state: Optional[ExtractionState] = None
        self.history: List[ExtractionState] = []
        self.failure: Optional[ExamServiceError] = None

    def _enter(self, state: ExtractionState):
        self.state = state
        self.history.append(state)

    def validate(self, request: ExtractionRequest):
        config = self.context.config
        if self.context.extraction_model is None:
            raise ConfigurationError("GEMINI_API_KEY is not set. PDF analysis is unavailable.")
        if not request.data:
            raise ValidationError("No PDF file provided.")
        if not is_pdf_content_type(request.content_type):
            raise ValidationError("File must be a PDF.")
        if len(request.data) > config.max_file_bytes:
            raise ValidationError(f"PDF must be under {config.MAX_FILE_SIZE_MB} MB.")

        subject = (request.subject or "").strip()
        if not is_valid_subject(subject):
            raise ValidationError("Invalid or missing subject.")

        question_count = parse_question_count(request.question_count)
        if question_count is None:
            raise ValidationError("Question count must be a positive number.")

        user_email = (request.user_email or "").strip()
        if not user_email:
            raise AuthenticationError("User email is required.")

        return subject, question_count, user_email

    def prompt(self, subject: str, question_count: int, data: bytes) -> str:
        text = self.context.extraction_model.generate(
            build_extraction_prompt(question_count),
            system_instruction=get_system_prompt(subject),
            pdf_bytes=data,
        )
        if not text:
            raise UpstreamModelError("The model returned no content. The PDF may be unreadable or empty.")
        return text

    def persist(self, user_email: str, filename: str, subject: str, raw_text: str,
                questions: List[Question]) -> str:
        store = self.context.store
        limit = self.context.config.ORIGINAL_TEXT_LIMIT
        upload_id = store.create_upload(
            user_email=user_email,
            filename=filename,
            subject=subject,
            storage_path=f"{PENDING_PREFIX}{filename}",
            original_text=raw_text[:limit],
        )

        try:
            store.insert_questions(upload_id, questions)
        except Exception as e:
            print(f"questions insert error: {e}")
            try:
                store.delete_upload(upload_id)
            except Exception as cleanup_error:
                print(f"Failed to remove upload {upload_id} after question insert error: {cleanup_error}")
            raise PersistenceError("Failed to save questions.") from e
        return upload_id

    def run(self, request: ExtractionRequest) -> ExtractionOutcome:
        try:
            self._enter(ExtractionState.VALIDATING)
            subject, question_count, user_email = self.validate(request)
            filename = (request.filename or "").strip() or "exam.pdf"
            page_count = count_pdf_pages(request.data)

            self._enter(ExtractionState.PROMPTING)
            print(f"Extracting up to {question_count} {subject} questions from {filename}")
            raw_text = self.prompt(subject, question_count, request.data)

            self._enter(ExtractionState.PARSING)
            questions = parse_extraction_response(raw_text, question_count, subject, page_count=page_count)
            if not questions:
                raise NoQuestionsFoundError()

            self._enter(ExtractionState.PERSISTING)
            upload_id = self.persist(user_email, filename, subject, raw_text, questions)
        except ExamServiceError as e:
            self.failure = e
            self._enter(ExtractionState.FAILED)
            raise

        self._enter(ExtractionState.ARCHIVING)
        if self.schedule is not None:
            self.schedule(archive_pdf, self.context, upload_id, request.data)
        else:
            archive_pdf(self.context, upload_id, request.data)

        self._enter(ExtractionState.DONE)
        print(f"Upload {upload_id} saved with {len(questions)} questions")
        return ExtractionOutcome(upload_id=upload_id, question_count=len(questions), states=list(self.history))


def run_extraction_pipeline(context: AppContext, request: ExtractionRequest,
                            schedule: Optional[Callable[..., Any]] = None) -> ExtractionOutcome:
    return ExtractionPipeline(context, schedule=schedule).run(request)
