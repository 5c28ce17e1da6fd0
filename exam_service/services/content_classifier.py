"""
Content Classifier
Decides what a block of extracted text is: SVG markup, an HTML table, a
delimiter-separated text table, a bare question stem, or Java code.

Every function is total: None/empty input gives the "no match" result.
classify_content() applies CLASSIFIER_RULES in a fixed order; later rules
assume the earlier ones did not match.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

KIND_EMPTY = "empty"
KIND_SVG = "svg"
KIND_HTML_TABLE = "html_table"
KIND_TEXT_TABLE = "text_table"
KIND_QUESTION_STEM = "question_stem"
KIND_CODE = "code"
KIND_TEXT = "text"

SPLIT_PIPE = "pipe"
SPLIT_TAB = "tab"
SPLIT_SPACES2 = "spaces2"
SPLIT_SPACE1 = "space1"

ALLOWED_TABLE_TAGS = ("table", "thead", "tbody", "tr", "th", "td")
STEM_MAX_LINES = 3
STEM_MAX_CHARS = 600
CODE_KEYWORDS = ("public ", "private ", "void ", "int ")

_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^>]*>[\s\S]*?</script\s*>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
_SCRIPT_TAG_RE = re.compile(r"</?script\b[^>]*>", re.IGNORECASE)
_ALLOWED_TAG_RE = re.compile(r"</?(?:table|thead|tbody|tr|th|td)>")
_FOREIGN_OBJECT_RE = re.compile(r"<foreignObject\b[\s\S]*?(?:</foreignObject\s*>|\Z)", re.IGNORECASE)
_EVENT_ATTR_RE = re.compile(r"[\s/]+on[a-zA-Z]+\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s>]+)", re.IGNORECASE)
_JS_URL_ATTR_RE = re.compile(r"\s+(?:xlink:)?href\s*=\s*[\"']?\s*javascript:[^\"'>]*[\"']?", re.IGNORECASE)
_SEPARATOR_CELL_RE = re.compile(r"^[-:\s]+$")
_LIST_MARKER_RE = re.compile(r"^(?:[IVX]+|\d+)\.\s")
_INTERROGATIVE_START_RE = re.compile(r"^(Which|What|How|Consider)\s", re.IGNORECASE)
_STEM_SENTENCE_RE = re.compile(r"\b(?:Which|What|Does|Will|Would)\b[^?]*\?")
_LAST_LINE_QUESTION_RE = re.compile(r"\n([^\n]*\?)\s*$")
_CODE_CHARS_RE = re.compile(r"[{};]")
_ROMAN_LIST_TAIL_RE = re.compile(r"([\s\S]*?\?)\s*(?:\r?\n[\s\S]*?)?\s*I\.\s+[\s\S]*\Z")


@dataclass(frozen=True)
class ContentMatch:
    kind: str
    matched: bool = True
    html: Optional[str] = None
    split_mode: Optional[str] = None


NO_MATCH = ContentMatch(kind=KIND_TEXT, matched=False)


def _clean(text: Optional[str]) -> str:
    return text.strip() if text else ""


def escape_html(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


# SVG / HTML tables

def is_svg_content(text: Optional[str]) -> bool:
    t = _clean(text)
    return bool(t) and (t.startswith("<svg") or "<svg" in t)


def is_table_html(text: Optional[str]) -> bool:
    t = _clean(text).lower()
    return "<table" in t and "</table>" in t


def _strip_until_stable(s: str, strip) -> str:
    previous = None
    while s != previous:
        previous = s
        s = strip(s)
    return s


def _keep_allowed(match) -> str:
    closing, tag = match.group(1), match.group(2).lower()
    if tag in ALLOWED_TABLE_TAGS:
        return f"<{closing}{tag}>"
    return ""


def _strip_table_pass(s: str) -> str:
    s = _SCRIPT_BLOCK_RE.sub("", s)
    s = _COMMENT_RE.sub("", s)
    return _TAG_RE.sub(_keep_allowed, s)


def _escape_brackets(text: str) -> str:
    return text.replace("<", "&lt;").replace(">", "&gt;")


def sanitize_table_html(html: Optional[str]) -> str:
    """
    Whitelist sanitizer for model-produced table markup.

    Script blocks and comments are dropped, table/thead/tbody/tr/th/td are
    kept without attributes, and every other tag is removed. Passes repeat
    until nothing changes so removed fragments cannot join into a new tag;
    any bracket left outside a kept tag is escaped.
    """
    s = _clean(html)
    if not s:
        return ""
    s = _strip_until_stable(s, _strip_table_pass)

    parts = []
    last = 0
    for match in _ALLOWED_TAG_RE.finditer(s):
        parts.append(_escape_brackets(s[last:match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(_escape_brackets(s[last:]))
    return "".join(parts)


def _strip_svg_pass(s: str) -> str:
    s = _SCRIPT_BLOCK_RE.sub("", s)
    s = _SCRIPT_TAG_RE.sub("", s)
    s = _FOREIGN_OBJECT_RE.sub("", s)
    s = _EVENT_ATTR_RE.sub("", s)
    return _JS_URL_ATTR_RE.sub("", s)


def sanitize_svg(svg: Optional[str]) -> str:
    """Drop script and foreignObject blocks, on* handlers and javascript: links from SVG markup."""
    s = _clean(svg)
    if not s:
        return ""
    return _strip_until_stable(s, _strip_svg_pass)


# Plain-text tables

def split_table_row(line: str, mode: str) -> List[str]:
    """Split a line into cells by pipe, tab, 2+ spaces or single spaces"""
    if mode == SPLIT_PIPE:
        parts = line.split("|")
    elif mode == SPLIT_TAB:
        parts = re.split(r"\t+", line)
    elif mode == SPLIT_SPACES2:
        parts = re.split(r"\s{2,}", line)
    else:
        parts = line.split()
    return [p.strip() for p in parts if p.strip()]


def is_pipe_separator_row(cells: List[str]) -> bool:
    """Markdown separator row such as |---|:---:|"""
    return len(cells) >= 1 and all(_SEPARATOR_CELL_RE.match(c) for c in cells)


def _table_lines(text: Optional[str]) -> List[str]:
    return [line.strip() for line in _clean(text).splitlines() if line.strip()]


def _pipe_data_rows(lines: List[str]) -> List[List[str]]:
    rows = [split_table_row(line, SPLIT_PIPE) for line in lines]
    return [r for r in rows if len(r) >= 2 and not is_pipe_separator_row(r)]


def get_table_split_mode(lines: List[str]) -> str:
    data_rows = _pipe_data_rows(lines)
    if len(data_rows) >= 2:
        column_count = len(data_rows[0])
        pipe_count = sum(line.count("|") for line in lines)
        if all(len(r) == column_count for r in data_rows) and pipe_count >= 2:
            return SPLIT_PIPE
    if any("\t" in line for line in lines):
        return SPLIT_TAB
    if any(re.search(r"\s{2,}", line) for line in lines):
        return SPLIT_SPACES2
    return SPLIT_SPACE1


def table_rows(text: Optional[str]) -> Tuple[Optional[str], List[List[str]]]:
    """Return (split mode, rows); separator rows are dropped in pipe mode."""
    lines = _table_lines(text)
    if not lines:
        return None, []
    mode = get_table_split_mode(lines)
    if mode == SPLIT_PIPE:
        return mode, _pipe_data_rows(lines)
    return mode, [split_table_row(line, mode) for line in lines]


def looks_like_table_text(text: Optional[str]) -> bool:
    """Plain text with 2+ rows and a consistent column count of at least 2"""
    if not _clean(text) or is_table_html(text):
        return False
    if len(_table_lines(text)) < 2:
        return False
    _, rows = table_rows(text)
    if len(rows) < 2 or any(len(r) < 2 for r in rows):
        return False
    column_count = len(rows[0])
    return all(len(r) == column_count for r in rows)


def plain_text_to_table_html(text: Optional[str]) -> str:
    """Convert a text table to HTML: first row is the header, cells escaped."""
    _, rows = table_rows(text)
    if not rows:
        return ""
    thead = "<thead><tr>" + "".join(f"<th>{escape_html(c)}</th>" for c in rows[0]) + "</tr></thead>"
    tbody = ""
    if len(rows) > 1:
        body_rows = "".join(
            "<tr>" + "".join(f"<td>{escape_html(c)}</td>" for c in row) + "</tr>"
            for row in rows[1:]
        )
        tbody = f"<tbody>{body_rows}</tbody>"
    return f"<table>{thead}{tbody}</table>"


# Stems and code

def looks_like_question_stem(text: Optional[str]) -> bool:
    """A single short question sentence, not table/SVG/list material."""
    t = _clean(text)
    if not t:
        return False
    if is_table_html(t) or looks_like_table_text(t) or is_svg_content(t):
        return False
    lines = _table_lines(t)
    list_lines = [line for line in lines if _LIST_MARKER_RE.match(line)]
    if len(list_lines) >= 2:
        return False
    short = len(lines) <= STEM_MAX_LINES and len(t) < STEM_MAX_CHARS
    return short and (t.endswith("?") or bool(_INTERROGATIVE_START_RE.match(t)))


def looks_like_code(text: Optional[str]) -> bool:
    t = _clean(text)
    if not t:
        return False
    return any(k in t for k in CODE_KEYWORDS) and ("{" in t or "}" in t)


def option_looks_like_code(text: Optional[str]) -> bool:
    t = _clean(text)
    if not t:
        return False
    return (";" in t or "{" in t) and ("{" in t or "}" in t)


def split_code_and_question(text: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Split a combined code + question blob into (code, stem).

    The stem is the trailing sentence that starts with Which/What/Does/Will/Would
    and ends with "?", or else a final line ending with "?". Nothing after the
    stem may look like code. Returns (text, None) when no stem is found.
    """
    t = _clean(text)
    if not t:
        return "", None

    for match in _STEM_SENTENCE_RE.finditer(t):
        tail = t[match.start():]
        if not _CODE_CHARS_RE.search(tail):
            return t[:match.start()].strip(), tail.strip()

    last_line = _LAST_LINE_QUESTION_RE.search(t)
    if last_line and not _CODE_CHARS_RE.search(last_line.group(1)):
        start = last_line.start(1)
        return t[:start].strip(), last_line.group(1).strip()

    return t, None


def get_stem_only_if_list_present(question_text: Optional[str]) -> str:
    """Drop a trailing Roman-numeral list (I. II. III.) from a stem that ends its question first."""
    if not _clean(question_text):
        return question_text or ""
    q = question_text.strip()
    match = _ROMAN_LIST_TAIL_RE.match(q)
    if match:
        return match.group(1).strip()
    return q


# Ordered rules

def _match_svg(text: str) -> ContentMatch:
    if is_svg_content(text):
        return ContentMatch(kind=KIND_SVG, html=sanitize_svg(text))
    return NO_MATCH


def _match_html_table(text: str) -> ContentMatch:
    if is_table_html(text):
        return ContentMatch(kind=KIND_HTML_TABLE, html=sanitize_table_html(text))
    return NO_MATCH


def _match_text_table(text: str) -> ContentMatch:
    if looks_like_table_text(text):
        mode, _ = table_rows(text)
        return ContentMatch(kind=KIND_TEXT_TABLE, html=plain_text_to_table_html(text), split_mode=mode)
    return NO_MATCH


def _match_question_stem(text: str) -> ContentMatch:
    if looks_like_question_stem(text):
        return ContentMatch(kind=KIND_QUESTION_STEM)
    return NO_MATCH


def _match_code(text: str) -> ContentMatch:
    if looks_like_code(text):
        return ContentMatch(kind=KIND_CODE)
    return NO_MATCH


CLASSIFIER_RULES: List[Tuple[str, Callable[[str], ContentMatch]]] = [
    (KIND_SVG, _match_svg),
    (KIND_HTML_TABLE, _match_html_table),
    (KIND_TEXT_TABLE, _match_text_table),
    (KIND_QUESTION_STEM, _match_question_stem),
    (KIND_CODE, _match_code),
]


def classify_content(text: Optional[str]) -> ContentMatch:
    """Return the first matching rule in CLASSIFIER_RULES order, else plain text."""
    if not _clean(text):
        return ContentMatch(kind=KIND_EMPTY)
    for _, rule in CLASSIFIER_RULES:
        result = rule(text)
        if result.matched:
            return result
    return ContentMatch(kind=KIND_TEXT)
