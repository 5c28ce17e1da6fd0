# tests/test_prompts.py
from exam_service.models.question import Question
from exam_service.services.solve_prompts import build_explanation_prompt, build_solve_prompt, format_options
from exam_service.services.subject_prompts import (
    SUBJECT_KEYS, build_extraction_prompt, get_system_prompt, is_valid_subject,
)


def test_every_subject_gets_shared_rules():
    for subject in SUBJECT_KEYS:
        prompt = get_system_prompt(subject)
        assert "Skip free-response sections entirely" in prompt
        assert "refer to the same reference block" in prompt or "Questions 4-5" in prompt


def test_subject_specific_rules():
    assert "Never copy the answer options" in get_system_prompt("AP_CSA")
    for subject in ("AP_MICROECONOMICS", "AP_MACROECONOMICS", "AP_STATISTICS"):
        assert "MANDATORY" in get_system_prompt(subject)
    assert "MANDATORY" not in get_system_prompt("AP_PSYCHOLOGY")


def test_unknown_subject_gets_generic_template():
    prompt = get_system_prompt("AP_BIOLOGY")
    assert prompt.startswith("You are an assistant that analyzes multiple-choice exam PDFs.")
    assert not is_valid_subject("AP_BIOLOGY")
    assert is_valid_subject("AP_CSA")


def test_extraction_prompt_names_count():
    assert "extract up to 7 multiple-choice questions" in build_extraction_prompt(7)


def test_format_options_keeps_column_letters():
    assert format_options(["x", None, " ", "y", None]) == ["A. x", "D. y"]


def test_solve_prompt_per_subject():
    code_question = Question(question_number=1, question_text="What is printed?", passage_text="int x = 1;",
                             precondition_text="x > 0", option_a="1", option_b="2")
    csa = build_solve_prompt("AP_CSA", [code_question])
    assert "AP Computer Science A" in csa
    assert "```\nint x = 1;\n```" in csa
    assert "Precondition:\nx > 0" in csa
    assert "A. 1\nB. 2" in csa

    assert "Microeconomics" in build_solve_prompt("AP_MACROECONOMICS", [code_question])
    assert "AP Statistics" in build_solve_prompt("AP_STATISTICS", [code_question])
    assert "AP Psychology" in build_solve_prompt("SOMETHING_ELSE", [code_question])


def test_explanation_prompt():
    prompt = build_explanation_prompt("Which is prime?", "Numbers 1-10", ["4", "7"], "B")
    assert "correct answer is B" in prompt
    assert "Numbers 1-10" in prompt
    assert "A. 4\nB. 7" in prompt
