import os
from typing import Mapping, Optional
from dotenv import load_dotenv

from exam_service.errors import ConfigurationError

load_dotenv()


def _split(value: str) -> list:
    return ["*"] if value == "*" else [v.strip() for v in value.split(",") if v.strip()]


class Config:
    """Settings read once from the environment and passed around explicitly."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        env = os.environ if env is None else env

        # Gemini Configuration
        self.GEMINI_API_KEY = (env.get("GEMINI_API_KEY") or "").strip() or None
        self.GEMINI_EXTRACTION_MODEL = env.get("GEMINI_EXTRACTION_MODEL", "gemini-2.5-flash")
        self.GEMINI_SOLVE_API_KEY = (env.get("GEMINI_SOLVE_API_KEY") or "").strip() or self.GEMINI_API_KEY
        self.GEMINI_SOLVE_MODEL = env.get("GEMINI_SOLVE_MODEL", "gemini-2.5-flash")
        self.GEMINI_MAX_RETRIES = int(env.get("GEMINI_MAX_RETRIES", "3"))

        # Database Configuration
        self.DATABASE_URL = env.get("DATABASE_URL") or None

        # Object storage (archived PDFs for page rendering)
        self.STORAGE_URL = (env.get("STORAGE_URL") or "").rstrip("/") or None
        self.STORAGE_SERVICE_KEY = env.get("STORAGE_SERVICE_KEY") or None
        self.PDF_BUCKET = env.get("PDF_BUCKET", "exam-pdfs")
        self.SIGNED_URL_EXPIRY_SEC = int(env.get("SIGNED_URL_EXPIRY_SEC", "3600"))

        # Pipeline limits
        self.MAX_FILE_SIZE_MB = int(env.get("MAX_FILE_SIZE_MB", "50"))
        self.SOLVE_BATCH_SIZE = int(env.get("SOLVE_BATCH_SIZE", "8"))
        self.ORIGINAL_TEXT_LIMIT = int(env.get("ORIGINAL_TEXT_LIMIT", "50000"))

        # CORS Configuration
        self.CORS_ORIGINS = _split(env.get("CORS_ORIGINS", "http://localhost:3000"))
        self.CORS_ALLOW_CREDENTIALS = env.get("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
        self.CORS_ALLOW_METHODS = _split(env.get("CORS_ALLOW_METHODS", "*"))
        self.CORS_ALLOW_HEADERS = _split(env.get("CORS_ALLOW_HEADERS", "*"))

    @property
    def max_file_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def storage_enabled(self) -> bool:
        return bool(self.STORAGE_URL and self.STORAGE_SERVICE_KEY)

    def validate(self):
        """Validate required configuration"""
        missing = [name for name in ("GEMINI_API_KEY", "DATABASE_URL") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} is required")
        if self.SOLVE_BATCH_SIZE < 1:
            raise ConfigurationError("SOLVE_BATCH_SIZE must be at least 1")
        return True
