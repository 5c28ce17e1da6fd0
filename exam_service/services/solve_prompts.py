from typing import List, Optional, Sequence

from exam_service.models.question import Question, OPTION_KEYS
from exam_service.services.subject_prompts import ECONOMICS_SUBJECTS

OUTPUT_INSTRUCTION = """
Return ONLY a JSON array of single uppercase letters in the same order as the questions.
Example: ["A","C","B"] means: question 1 -> A, question 2 -> C, question 3 -> B.
Each element must be exactly one of: "A", "B", "C", "D", "E".
Do not include markdown, explanation, or any other text."""


def format_options(options: Sequence[Optional[str]]) -> List[str]:
    """Lettered option lines; blank slots are skipped but keep their column letter"""
    return [
        f"{key}. {text.strip()}"
        for key, text in zip(OPTION_KEYS, options)
        if text is not None and text.strip()
    ]


def _question_block(index: int, question: Question, reference_label: str, code: bool = False) -> str:
    reference = (question.passage_text or "").strip()
    parts = [f"\n--- Question {index} ---"]

    if code:
        precondition = (question.precondition_text or "").strip()
        if precondition:
            parts.append(f"Precondition:\n{precondition}\n")
        parts.append(f"{reference_label}:\n```\n{reference or '(no code)'}\n```\n")
    elif reference:
        parts.append(f"{reference_label}:\n{reference}\n")

    parts.append(f"Question: {question.question_text.strip()}\n")
    parts.append("Options:\n" + "\n".join(format_options(question.options())))
    return "\n".join(parts)


def build_csa_solve_prompt(questions: List[Question]) -> str:
    blocks = [_question_block(i + 1, q, "Reference code (Java)", code=True) for i, q in enumerate(questions)]
    return (
        "You are an expert in AP Computer Science A (Java). Solve each multiple-choice question below. "
        "Use the reference code and your Java knowledge to pick the correct answer.\n\n"
        + "\n".join(blocks) + "\n\n" + OUTPUT_INSTRUCTION
    )


def build_economics_solve_prompt(questions: List[Question]) -> str:
    blocks = [_question_block(i + 1, q, "Graph/Table/Reference data") for i, q in enumerate(questions)]
    return (
        "You are an expert in AP Microeconomics and Macroeconomics. Solve each multiple-choice question. "
        "Use the graph, table, or reference data when provided. Apply economic reasoning to pick the correct answer.\n\n"
        + "\n".join(blocks) + "\n\n" + OUTPUT_INSTRUCTION
    )


def build_psychology_solve_prompt(questions: List[Question]) -> str:
    blocks = [_question_block(i + 1, q, "Passage") for i, q in enumerate(questions)]
    return (
        "You are an expert in AP Psychology. Solve each multiple-choice question. "
        "Use the passage when provided. Apply psychology concepts to pick the correct answer.\n\n"
        + "\n".join(blocks) + "\n\n" + OUTPUT_INSTRUCTION
    )


def build_statistics_solve_prompt(questions: List[Question]) -> str:
    blocks = [_question_block(i + 1, q, "Data/Table/Reference") for i, q in enumerate(questions)]
    return (
        "You are an expert in AP Statistics. Solve each multiple-choice question. "
        "Use the data, table, or reference when provided. Apply statistical reasoning to pick the correct answer.\n\n"
        + "\n".join(blocks) + "\n\n" + OUTPUT_INSTRUCTION
    )


def build_solve_prompt(subject: str, questions: List[Question]) -> str:
    if subject == "AP_CSA":
        return build_csa_solve_prompt(questions)
    if subject in ECONOMICS_SUBJECTS:
        return build_economics_solve_prompt(questions)
    if subject == "AP_STATISTICS":
        return build_statistics_solve_prompt(questions)
    return build_psychology_solve_prompt(questions)


def build_explanation_prompt(question_text: str, passage_text: Optional[str],
                             options: Sequence[Optional[str]], correct_answer: str) -> str:
    options_text = "\n".join(
        f"{OPTION_KEYS[i] if i < len(OPTION_KEYS) else i + 1}. {o or ''}" for i, o in enumerate(options)
    )
    passage_block = ""
    if passage_text and passage_text.strip():
        passage_block = f"\nReference material (code, graph, or passage):\n{passage_text.strip()}\n"

    return f"""You are an expert tutor. Explain concisely why the correct answer is {correct_answer} for this multiple-choice question. Be clear and educational. Write 2-4 short paragraphs.

Question: {question_text.strip()}
{passage_block}
Options:
{options_text}

Explain why {correct_answer} is correct:"""
