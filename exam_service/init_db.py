"""
Create the exam tables in the configured Postgres database.

Usage: python -m exam_service.init_db
"""
from exam_service.config import Config
from exam_service.services.exam_store import ExamStore


def init_db(config: Config = None):
    config = config or Config()
    store = ExamStore(config.DATABASE_URL)
    store.init_schema()
    return store


if __name__ == "__main__":
    init_db()
