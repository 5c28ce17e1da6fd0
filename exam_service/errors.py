from typing import Optional


class ExamServiceError(Exception):
    """Base error carrying a short, user-facing message and an HTTP status."""

    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ExamServiceError):
    status_code = 400
    default_message = "Invalid request."


class AuthenticationError(ValidationError):
    status_code = 401
    default_message = "User email is required."


class ConfigurationError(ExamServiceError):
    status_code = 500
    default_message = "The service is not configured. Contact the administrator."


class UpstreamModelError(ExamServiceError):
    status_code = 502
    default_message = "The AI service is unavailable right now. Please try again."


class ParseError(ExamServiceError):
    status_code = 502
    default_message = "Failed to parse the AI response. Try again or use a simpler PDF."


class NoQuestionsFoundError(ParseError):
    status_code = 422
    default_message = "No questions found in the PDF."


class PersistenceError(ExamServiceError):
    status_code = 500
    default_message = "Failed to save data. Please try again."


class ConflictError(ExamServiceError):
    status_code = 400
    default_message = "The request conflicts with the current state."


class ForbiddenError(ConflictError):
    status_code = 403
    default_message = "You do not have access to this exam."


class NotFoundError(ConflictError):
    status_code = 404
    default_message = "Not found."
