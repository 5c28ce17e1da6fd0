import json
import re
from typing import Any, Dict, List, Optional, Tuple

from exam_service.errors import ParseError
from exam_service.models.question import Question, OPTION_KEYS
from exam_service.services.subject_prompts import CODE_SUBJECTS
from exam_service.services.content_classifier import split_code_and_question

NO_QUESTION_TEXT = "No question text."
GENERIC_STEM = "Which of the following is correct?"
OPTION_COLUMNS = ("option_a", "option_b", "option_c", "option_d", "option_e")

_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\r?\n?([\s\S]*?)\r?\n?```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove a single ```json ... ``` wrapper if the whole response is fenced"""
    cleaned = (text or "").strip()
    match = _CODE_FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def normalize_correct(value: Any) -> Optional[str]:
    if value is None:
        return None
    letter = str(value).upper().strip()
    return letter if letter in OPTION_KEYS else None


def options_to_columns(options: Any) -> Dict[str, Optional[str]]:
    """Map an options array onto the five A-E columns; blanks and missing slots become None"""
    items = options if isinstance(options, list) else []
    texts = [str(o).strip() if o is not None else "" for o in items[:len(OPTION_COLUMNS)]]
    texts += [""] * (len(OPTION_COLUMNS) - len(texts))
    return {column: (text or None) for column, text in zip(OPTION_COLUMNS, texts)}


def is_placeholder_text(text: Any) -> bool:
    """Blank, pure digits, the boilerplate fallback, or too short to be real content"""
    if text is None:
        return True
    t = str(text).strip()
    return not t or t.isdigit() or t == NO_QUESTION_TEXT or len(t) < 3


def _usable(value: Any) -> Optional[str]:
    if is_placeholder_text(value):
        return None
    return str(value).strip()


def normalize_page_number(value: Any, page_count: Optional[int] = None) -> Optional[int]:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return None
    if page < 1 or (page_count and page > page_count):
        return None
    return page


def _code_stem_and_reference(item: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    question = _usable(item.get("question"))
    code = _usable(item.get("code"))
    content = _usable(item.get("content"))

    if question:
        reference = code or (content if content and content != question else None)
        if reference and reference.endswith(question):
            reference = reference[:-len(question)].strip() or None
        return question, reference

    combined = code or content
    if not combined:
        return None, None
    code_part, stem = split_code_and_question(combined)
    if stem:
        return _usable(stem), _usable(code_part)
    if code:
        return content if content and content != code else None, code
    return None, combined


def _text_stem_and_reference(item: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    question = _usable(item.get("question"))
    content = _usable(item.get("content"))
    stem = question or content

    reference = _usable(item.get("image_description")) or _usable(item.get("code"))
    if not reference and question and content and content != question:
        reference = content
    return stem, reference


def normalize_question(item: Any, question_number: int, subject: str,
                       page_count: Optional[int] = None) -> Question:
    """Turn one raw model record into a canonical Question"""
    if not isinstance(item, dict):
        item = {}

    if subject in CODE_SUBJECTS:
        stem, reference = _code_stem_and_reference(item)
    else:
        stem, reference = _text_stem_and_reference(item)

    columns = options_to_columns(item.get("options"))
    if not stem:
        has_options = any(columns.values())
        stem = GENERIC_STEM if has_options else NO_QUESTION_TEXT

    return Question(
        question_number=question_number,
        question_text=stem,
        passage_text=reference,
        precondition_text=_usable(item.get("precondition")),
        correct_answer=normalize_correct(item.get("correct")),
        page_number=normalize_page_number(item.get("page_number"), page_count),
        **columns,
    )


def parse_json_array(raw: str) -> List[Any]:
    """
    Parse the model response as a JSON array.

    Raises ParseError for malformed JSON; a non-array value yields [].
    """
    text = strip_code_fence(raw)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        print(f"Failed to parse extraction JSON: {e}")
        print(f"Gemini response (first 500 chars): {text[:500]}")
        raise ParseError() from e
    if not isinstance(parsed, list):
        return []
    return parsed


def parse_extraction_response(raw: str, question_count: int, subject: str,
                              page_count: Optional[int] = None) -> List[Question]:
    items = parse_json_array(raw)[:max(0, question_count)]
    return [
        normalize_question(item, i + 1, subject, page_count=page_count)
        for i, item in enumerate(items)
    ]
