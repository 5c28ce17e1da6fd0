from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Any
import psycopg2
from psycopg2.extras import RealDictCursor, execute_values

from exam_service.errors import PersistenceError, ConfigurationError
from exam_service.models.upload import Upload
from exam_service.models.question import Question
from exam_service.models.attempt import Attempt, AttemptAnswer

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS pdf_uploads (
    id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_email    TEXT NOT NULL,
    filename      TEXT NOT NULL,
    subject       TEXT NOT NULL,
    storage_path  TEXT,
    original_text TEXT,
    is_published  BOOLEAN NOT NULL DEFAULT FALSE,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS questions (
    id                UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    upload_id         UUID NOT NULL REFERENCES pdf_uploads(id) ON DELETE CASCADE,
    question_number   INTEGER NOT NULL,
    question_text     TEXT NOT NULL,
    passage_text      TEXT,
    precondition_text TEXT,
    option_a          TEXT,
    option_b          TEXT,
    option_c          TEXT,
    option_d          TEXT,
    option_e          TEXT,
    correct_answer    TEXT CHECK (correct_answer IN ('A','B','C','D','E')),
    page_number       INTEGER,
    UNIQUE (upload_id, question_number)
);

CREATE TABLE IF NOT EXISTS attempts (
    id                 UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_email         TEXT NOT NULL,
    upload_id          UUID NOT NULL REFERENCES pdf_uploads(id) ON DELETE CASCADE,
    total_questions    INTEGER NOT NULL DEFAULT 0,
    started_at         TIMESTAMPTZ NOT NULL DEFAULT now(),
    completed_at       TIMESTAMPTZ,
    time_spent_seconds INTEGER,
    correct_count      INTEGER,
    incorrect_count    INTEGER,
    unanswered_count   INTEGER
);

CREATE TABLE IF NOT EXISTS attempt_answers (
    id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    attempt_id  UUID NOT NULL REFERENCES attempts(id) ON DELETE CASCADE,
    question_id UUID NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
    user_answer TEXT CHECK (user_answer IN ('A','B','C','D','E')),
    is_flagged  BOOLEAN NOT NULL DEFAULT FALSE,
    ai_answer   TEXT CHECK (ai_answer IN ('A','B','C','D','E')),
    is_correct  BOOLEAN NOT NULL DEFAULT FALSE,
    answered_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (attempt_id, question_id)
);

CREATE INDEX IF NOT EXISTS idx_questions_upload ON questions(upload_id, question_number);
CREATE INDEX IF NOT EXISTS idx_attempt_answers_attempt ON attempt_answers(attempt_id);
"""

QUESTION_COLUMNS = (
    "question_number", "question_text", "passage_text", "precondition_text",
    "option_a", "option_b", "option_c", "option_d", "option_e",
    "correct_answer", "page_number",
)


def _row(result: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not result:
        return None
    row = dict(result)
    for key in ("id", "upload_id", "attempt_id", "question_id"):
        if row.get(key) is not None:
            row[key] = str(row[key])
    return row


class ExamStore:
    """
    Postgres persistence for uploads, questions, attempts and attempt answers.

    Opens one connection per operation. Driver errors surface as PersistenceError.
    """

    def __init__(self, database_url: Optional[str]):
        if not database_url:
            raise ConfigurationError("DATABASE_URL is required")
        self.database_url = database_url

    def get_db_connection(self):
        """Get PostgreSQL connection"""
        try:
            return psycopg2.connect(self.database_url, cursor_factory=RealDictCursor)
        except psycopg2.Error as e:
            print(f"DB Connection failed: {e}")
            raise PersistenceError() from e

    @contextmanager
    def _cursor(self, action: str) -> Iterator[Any]:
        conn = self.get_db_connection()
        try:
            with conn:
                with conn.cursor() as cur:
                    yield cur
        except psycopg2.Error as e:
            print(f"Database {action} error: {e}")
            raise PersistenceError() from e
        finally:
            conn.close()

    def init_schema(self):
        with self._cursor("schema") as cur:
            cur.execute(SCHEMA_SQL)
        print("Database schema ready")

    # Uploads

    def create_upload(self, user_email: str, filename: str, subject: str,
                      storage_path: Optional[str], original_text: Optional[str]) -> str:
        with self._cursor("upload insert") as cur:
            cur.execute(
                """
                INSERT INTO pdf_uploads (user_email, filename, subject, storage_path, original_text)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (user_email, filename, subject, storage_path, original_text)
            )
            return str(cur.fetchone()["id"])

    def get_upload(self, upload_id: str) -> Optional[Upload]:
        with self._cursor("upload fetch") as cur:
            cur.execute("SELECT * FROM pdf_uploads WHERE id = %s", (upload_id,))
            row = _row(cur.fetchone())
        return Upload(**row) if row else None

    def update_storage_path(self, upload_id: str, storage_path: str):
        with self._cursor("storage path update") as cur:
            cur.execute("UPDATE pdf_uploads SET storage_path = %s WHERE id = %s", (storage_path, upload_id))

    def set_published(self, upload_id: str, is_published: bool):
        with self._cursor("publish update") as cur:
            cur.execute("UPDATE pdf_uploads SET is_published = %s WHERE id = %s", (is_published, upload_id))

    def delete_upload(self, upload_id: str):
        """Delete an upload; questions, attempts and answers cascade"""
        with self._cursor("upload delete") as cur:
            cur.execute("DELETE FROM pdf_uploads WHERE id = %s", (upload_id,))

    def list_published_uploads(self, subject: Optional[str] = None) -> List[Dict[str, Any]]:
        query = """
            SELECT u.id, u.filename, u.subject, u.created_at, COUNT(q.id) AS question_count
            FROM pdf_uploads u
            LEFT JOIN questions q ON q.upload_id = u.id
            WHERE u.is_published = TRUE
        """
        params: tuple = ()
        if subject:
            query += " AND u.subject = %s"
            params = (subject,)
        query += " GROUP BY u.id ORDER BY u.created_at DESC"

        with self._cursor("published fetch") as cur:
            cur.execute(query, params)
            return [_row(r) for r in cur.fetchall()]

    # Questions

    def insert_questions(self, upload_id: str, questions: List[Question]):
        """Insert all questions of an upload in a single batch"""
        rows = [
            (upload_id,) + tuple(getattr(q, column) for column in QUESTION_COLUMNS)
            for q in questions
        ]
        with self._cursor("questions insert") as cur:
            execute_values(
                cur,
                f"INSERT INTO questions (upload_id, {', '.join(QUESTION_COLUMNS)}) VALUES %s",
                rows
            )

    def get_questions(self, upload_id: str) -> List[Question]:
        with self._cursor("questions fetch") as cur:
            cur.execute(
                "SELECT * FROM questions WHERE upload_id = %s ORDER BY question_number ASC",
                (upload_id,)
            )
            return [Question(**_row(r)) for r in cur.fetchall()]

    def get_question(self, question_id: str) -> Optional[Question]:
        with self._cursor("question fetch") as cur:
            cur.execute("SELECT * FROM questions WHERE id = %s", (question_id,))
            row = _row(cur.fetchone())
        return Question(**row) if row else None

    # Attempts

    def create_attempt(self, user_email: str, upload_id: str, total_questions: int) -> str:
        with self._cursor("attempt insert") as cur:
            cur.execute(
                """
                INSERT INTO attempts (user_email, upload_id, total_questions)
                VALUES (%s, %s, %s)
                RETURNING id
                """,
                (user_email, upload_id, total_questions)
            )
            return str(cur.fetchone()["id"])

    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        with self._cursor("attempt fetch") as cur:
            cur.execute("SELECT * FROM attempts WHERE id = %s", (attempt_id,))
            row = _row(cur.fetchone())
        return Attempt(**row) if row else None

    def finalize_attempt(self, attempt_id: str, completed_at: datetime, time_spent_seconds: int,
                         correct_count: int, incorrect_count: int, unanswered_count: int) -> bool:
        """Stamp completion once. Returns False if the attempt was already completed."""
        with self._cursor("attempt finalize") as cur:
            cur.execute(
                """
                UPDATE attempts
                SET completed_at = %s, time_spent_seconds = %s,
                    correct_count = %s, incorrect_count = %s, unanswered_count = %s
                WHERE id = %s AND completed_at IS NULL
                """,
                (completed_at, time_spent_seconds, correct_count, incorrect_count,
                 unanswered_count, attempt_id)
            )
            return cur.rowcount == 1

    # Attempt answers

    def get_attempt_answers(self, attempt_id: str) -> List[AttemptAnswer]:
        with self._cursor("answers fetch") as cur:
            cur.execute("SELECT * FROM attempt_answers WHERE attempt_id = %s", (attempt_id,))
            return [AttemptAnswer(**_row(r)) for r in cur.fetchall()]

    def upsert_attempt_answer(self, attempt_id: str, question_id: str, user_answer: Optional[str],
                              is_flagged: bool, is_correct: bool, answered_at: datetime):
        with self._cursor("answer upsert") as cur:
            cur.execute(
                """
                INSERT INTO attempt_answers
                    (attempt_id, question_id, user_answer, is_flagged, is_correct, answered_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (attempt_id, question_id)
                DO UPDATE SET user_answer = EXCLUDED.user_answer,
                              is_flagged = EXCLUDED.is_flagged,
                              is_correct = EXCLUDED.is_correct,
                              answered_at = EXCLUDED.answered_at
                """,
                (attempt_id, question_id, user_answer, is_flagged, is_correct, answered_at)
            )

    def update_answer_result(self, answer_id: str, ai_answer: Optional[str], is_correct: bool):
        with self._cursor("answer update") as cur:
            cur.execute(
                "UPDATE attempt_answers SET ai_answer = %s, is_correct = %s WHERE id = %s",
                (ai_answer, is_correct, answer_id)
            )

    def insert_attempt_answers(self, answers: List[AttemptAnswer]):
        if not answers:
            return
        rows = [
            (a.attempt_id, a.question_id, a.user_answer, a.is_flagged, a.ai_answer, a.is_correct)
            for a in answers
        ]
        with self._cursor("answers backfill") as cur:
            execute_values(
                cur,
                """
                INSERT INTO attempt_answers
                    (attempt_id, question_id, user_answer, is_flagged, ai_answer, is_correct)
                VALUES %s
                ON CONFLICT (attempt_id, question_id) DO NOTHING
                """,
                rows
            )
