"""
Question View
Builds the display payload for the exam screen: stem on the right, reference
material (code, table, SVG, passage) on the left, or the exact PDF page for
graph-heavy economics questions.
"""
from typing import Any, Dict, Optional

from exam_service.models.question import Question, OPTION_KEYS
from exam_service.models.upload import Upload
from exam_service.services import content_classifier as classifier
from exam_service.services.extraction_parser import is_placeholder_text
from exam_service.services.subject_prompts import CODE_SUBJECTS, ECONOMICS_SUBJECTS


def _reference_payload(reference: Optional[str]) -> Dict[str, Any]:
    match = classifier.classify_content(reference)
    if match.kind in (classifier.KIND_EMPTY, classifier.KIND_QUESTION_STEM):
        return {"kind": None, "text": None, "html": None}
    return {
        "kind": match.kind,
        "text": reference.strip(),
        "html": match.html,
    }


def build_question_view(question: Question, upload: Upload) -> Dict[str, Any]:
    subject = upload.subject
    stem = question.question_text or ""
    reference = question.passage_text

    if subject in CODE_SUBJECTS:
        # uploads made before code and stem were separate fields
        if not (reference or "").strip() and classifier.looks_like_code(stem):
            code_part, split_stem = classifier.split_code_and_question(stem)
            if split_stem:
                stem, reference = split_stem, code_part or None
    else:
        stem = classifier.get_stem_only_if_list_present(stem)

    if is_placeholder_text(stem) and classifier.looks_like_question_stem(reference):
        stem, reference = reference.strip(), None

    options = []
    for key, text in zip(OPTION_KEYS, question.options()):
        if text is None:
            continue
        options.append({
            "key": key,
            "text": text,
            "isCode": subject in CODE_SUBJECTS and classifier.option_looks_like_code(text),
        })

    use_page_image = (
        subject in ECONOMICS_SUBJECTS
        and question.page_number is not None
        and upload.has_archived_pdf()
    )

    return {
        "id": question.id,
        "questionNumber": question.question_number,
        "stem": stem,
        "reference": _reference_payload(reference),
        "precondition": question.precondition_text,
        "options": options,
        "pageNumber": question.page_number,
        "usePageImage": use_page_image,
    }
