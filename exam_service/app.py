from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional

from exam_service.config import Config
from exam_service.context import AppContext, build_context
from exam_service.errors import ExamServiceError
from exam_service.api.routes import exam, uploads


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the FastAPI app. Without a context, one is built from the
    environment at startup and missing configuration stops the process.
    """
    config = context.config if context is not None else Config()

    app = FastAPI(
        title="Exam PDF Service",
        description="PDF exam extraction, attempts and AI answer resolution",
        version="1.0.0"
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=config.CORS_ALLOW_METHODS,
        allow_headers=config.CORS_ALLOW_HEADERS,
    )

    @app.on_event("startup")
    def on_startup():
        if app.state.context is None:
            app.state.context = build_context(config)
            print("Exam service context initialized")

    @app.exception_handler(ExamServiceError)
    async def handle_service_error(request: Request, exc: ExamServiceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        print(f"Invalid request body for {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        print(f" Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Something went wrong. Please try again."})

    app.include_router(uploads.router)
    app.include_router(exam.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        ready = app.state.context is not None
        return {
            "ok": ready,
            "status": "healthy" if ready else "starting",
            "service": "exam",
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "service": "Exam PDF Service",
            "version": "1.0.0",
            "endpoints": {
                "health": "GET /health",
                "analyze": "POST /api/upload/analyze",
                "pdf_url": "GET /api/upload/{id}",
                "delete": "DELETE /api/upload/{id}",
                "publish": "PATCH /api/upload/{id}/publish",
                "published": "GET /api/exams/published?subject=AP_CSA",
                "questions": "GET /api/exams/{id}/questions",
                "start": "POST /api/exam/start",
                "answer": "POST /api/exam/answer",
                "complete": "POST /api/exam/complete",
                "explain": "POST /api/exam/explain",
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
