from dataclasses import dataclass
from typing import Any, Optional

from exam_service.config import Config
from exam_service.clients.gemini_client import GeminiModel
from exam_service.clients.storage_client import create_storage_client


@dataclass
class AppContext:
    """Everything a request handler needs, built once at startup."""
    config: Config
    store: Any
    extraction_model: Optional[Any] = None
    resolution_model: Optional[Any] = None
    storage: Optional[Any] = None


def build_context(config: Config) -> AppContext:
    """Validate config and create the store, Gemini models and storage client"""
    from exam_service.services.exam_store import ExamStore

    config.validate()

    extraction_model = GeminiModel.from_api_key(
        config.GEMINI_API_KEY,
        config.GEMINI_EXTRACTION_MODEL,
        retries=config.GEMINI_MAX_RETRIES,
    )
    resolution_model = None
    if config.GEMINI_SOLVE_API_KEY:
        resolution_model = GeminiModel.from_api_key(
            config.GEMINI_SOLVE_API_KEY,
            config.GEMINI_SOLVE_MODEL,
            retries=config.GEMINI_MAX_RETRIES,
        )

    return AppContext(
        config=config,
        store=ExamStore(config.DATABASE_URL),
        extraction_model=extraction_model,
        resolution_model=resolution_model,
        storage=create_storage_client(config),
    )
