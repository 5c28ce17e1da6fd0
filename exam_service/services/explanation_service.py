from typing import List, Optional

from exam_service.errors import ConfigurationError, ValidationError
from exam_service.services.extraction_parser import normalize_correct
from exam_service.services.solve_prompts import build_explanation_prompt

NO_EXPLANATION = "No explanation available."


def explain_answer(model, question_text: Optional[str], passage_text: Optional[str],
                   options: Optional[List[str]], correct_answer: Optional[str]) -> str:
    """Ask the model why the given letter is the right answer"""
    if model is None:
        raise ConfigurationError("GEMINI_API_KEY is not set.")
    if not (question_text or "").strip():
        raise ValidationError("questionText is required.")

    letter = normalize_correct(correct_answer) or "A"
    prompt = build_explanation_prompt(question_text, passage_text, options or [], letter)
    text = model.generate(prompt)
    return (text or "").strip() or NO_EXPLANATION
