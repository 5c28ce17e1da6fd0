"""
Per-subject Gemini system prompts for PDF question extraction.

Each subject gets a fixed instruction describing the JSON record contract
and its own extraction rules (code/stem separation, graph page numbers,
passages).
"""

SUBJECT_KEYS = (
    "AP_CSA",
    "AP_MICROECONOMICS",
    "AP_MACROECONOMICS",
    "AP_PSYCHOLOGY",
    "AP_STATISTICS",
)

SUBJECT_LABELS = {
    "AP_CSA": "AP Computer Science A",
    "AP_MICROECONOMICS": "AP Microeconomics",
    "AP_MACROECONOMICS": "AP Macroeconomics",
    "AP_PSYCHOLOGY": "AP Psychology",
    "AP_STATISTICS": "AP Statistics",
}

CODE_SUBJECTS = ("AP_CSA",)
ECONOMICS_SUBJECTS = ("AP_MICROECONOMICS", "AP_MACROECONOMICS")
GRAPH_SUBJECTS = ECONOMICS_SUBJECTS + ("AP_STATISTICS",)

OUTPUT_SCHEMA = """
For every question produce this JSON object:
{
  "type": "code" | "image" | "text",
  "content": "question text, or the reference material when there is no separate field for it",
  "code": "reference source code only (or null)",
  "question": "the question stem only, the sentence that asks the question",
  "precondition": "precondition / Javadoc comment text (or null)",
  "image_description": "graph or table as SVG or an HTML <table> (or null)",
  "page_number": 1,
  "options": ["option A text", "option B text", "option C text", "option D text", "option E text"],
  "correct": "A"
}
Return all questions as one JSON array: [ { ... }, { ... } ]
Omit "correct" (or use null) when the answer key is not printed in the PDF.
"""

COMMON_RULES = """
COMMON RULES:
- Extract ONLY multiple-choice questions. Skip free-response sections entirely.
- When several questions refer to the same reference block ("Questions 4-5 refer to the following..."),
  emit a separate, complete record for each question and repeat the shared reference material in every record.
- Keep options in printed order. Do not prefix them with their letters.
"""


def is_valid_subject(subject) -> bool:
    return subject in SUBJECT_KEYS


def get_system_prompt(subject: str) -> str:
    """Return the extraction instruction for a subject; unknown keys get a generic template."""
    if subject in ECONOMICS_SUBJECTS:
        return f"""You are an assistant that analyzes AP Microeconomics / AP Macroeconomics exam PDFs.

TASK:
- Detect the graphs on each page (supply and demand, cost curves, etc.).
- Do not just describe a graph in prose. Reproduce it as a clean HTML table or as SVG code
  with axes, curves and labels, and put it in "image_description".
- Put the question stem in "question".

OUTPUT: {OUTPUT_SCHEMA}
{COMMON_RULES}
RULES:
- Questions with a graph or table use type "image".
- "page_number" (1-based page of the PDF) is MANDATORY on every record that references a graph or table.
  The exam screen renders that exact page, so it must be correct."""

    if subject in CODE_SUBJECTS:
        return f"""You are an assistant that analyzes AP Computer Science A (Java) exam PDFs.

TASK:
- Extract Java code as a code block, never as reflowed prose.
- NEVER change the indentation of the code; keep the original formatting.
- Put the code in "code" and ONLY the question stem in "question".

OUTPUT: {OUTPUT_SCHEMA}
{COMMON_RULES}
RULES:
- Questions with code use type "code".
- Code and question stem are separate fields. Never duplicate the stem inside "code" and never
  repeat the code inside "question".
- Never copy the answer options into "code"; options belong only in "options".
- Precondition or Javadoc comments that describe the method go to "precondition"."""

    if subject in ("AP_STATISTICS", "AP_PSYCHOLOGY"):
        page_rule = ""
        if subject in GRAPH_SUBJECTS:
            page_rule = """
- "page_number" (1-based page of the PDF) is MANDATORY on every record that references a graph or table."""
        return f"""You are an assistant that analyzes {SUBJECT_LABELS[subject]} exam PDFs.

TASK:
- Extract statistics tables or psychology texts as structured data.
- When a question is based on a long reading passage, give the full passage so the test-taker
  never loses it while answering. Tables go to "image_description" as an HTML <table>.
- Put the question stem in "question".

OUTPUT: {OUTPUT_SCHEMA}
{COMMON_RULES}
RULES:
- Questions with a long passage use type "text" and repeat the full passage in "content".{page_rule}"""

    return f"""You are an assistant that analyzes multiple-choice exam PDFs. Extract the questions as structured JSON.

OUTPUT: {OUTPUT_SCHEMA}
{COMMON_RULES}
Use type "code" for code, "image" for graphs or tables (with image_description), otherwise "text"."""


def build_extraction_prompt(question_count: int) -> str:
    """User instruction sent next to the PDF."""
    return (
        f"Analyze the attached PDF and extract up to {question_count} multiple-choice questions. "
        "Return ONLY a JSON array of objects. Each object must have: "
        '"type" ("code" | "image" | "text"), '
        '"content" (question text or reference material), '
        '"code" (reference code or null), '
        '"question" (the question stem), '
        '"precondition" (precondition text or null), '
        '"image_description" (SVG/table or null), '
        '"page_number" (1-based page number or null), '
        '"options" (array of option texts in order A, B, C, D [and E if present]), '
        '"correct" (letter A/B/C/D/E, or null if not printed). '
        "Do not include any markdown or explanation, only the JSON array."
    )
