"""Vocabulary highlighting for rendered article text.

Terms are wrapped in tooltip markup at standalone occurrences only: a match
must not touch another letter on either side, where "letter" is any Unicode
letter (so `für` does not match inside `dafür`). Longer terms are applied
first and annotated text is never matched again.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Iterable

from .models import VocabularyTerm


LOGGER = logging.getLogger(__name__)

LETTER = r"[^\W\d_]"

# Existing annotations and character entities are never matched against. The
# caller escapes paragraph text beforehand. Tooltips contain no nested <span>, so
# the first double close ends an annotation.
PROTECTED_RE = re.compile(
    r'<span class="vocab[ "].*?</span></span>'
    r"|&(?:#\d+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);",
    re.DOTALL,
)
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")

HEADING_MIN_LEN = 3
HEADING_MAX_LEN = 120
HEADING_MAX_TOKENS = 12
HEADING_CAPITALIZED_RATIO = 0.6
BULLET_MARKERS = ("-", "*", "•")
SENTENCE_END = (".", "!", "?")


def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!{LETTER}){re.escape(term)}(?!{LETTER})")


def _esc(value: str) -> str:
    return html.escape(value or "", quote=True)


def annotation_markup(surface: str, term: VocabularyTerm) -> str:
    """Build the inline span for one matched occurrence."""

    header = f"<strong>{_esc(term.term)}</strong>"
    if term.part_of_speech:
        header += f" <em>{_esc(term.part_of_speech)}</em>"
    lines = [header, _esc(term.gloss)]
    if term.example:
        lines.append(f"<small>{_esc(term.example)}</small>")
    tip = "<br>".join(lines)
    return (
        f'<span class="vocab vocab-{_esc(term.category)}" tabindex="0">'
        f"{_esc(surface)}"
        f'<span class="vocab-tip" role="tooltip">{tip}</span></span>'
    )


def _segments(text: str) -> list[tuple[str, bool]]:
    """Split text into (chunk, is_markup) pieces."""
    out: list[tuple[str, bool]] = []
    pos = 0
    for m in PROTECTED_RE.finditer(text):
        if m.start() > pos:
            out.append((text[pos : m.start()], False))
        out.append((m.group(0), True))
        pos = m.end()
    if pos < len(text):
        out.append((text[pos:], False))
    return out


def _apply_term(segments: list[tuple[str, bool]], pattern: re.Pattern[str], term: VocabularyTerm) -> list[tuple[str, bool]]:
    out: list[tuple[str, bool]] = []
    for chunk, is_markup in segments:
        if is_markup:
            out.append((chunk, True))
            continue
        pos = 0
        for m in pattern.finditer(chunk):
            if m.start() > pos:
                out.append((chunk[pos : m.start()], False))
            out.append((annotation_markup(m.group(0), term), True))
            pos = m.end()
        if pos < len(chunk):
            out.append((chunk[pos:], False))
    return out


def highlight(paragraph_text: str, terms: Iterable[VocabularyTerm]) -> str:
    """Return `paragraph_text` as markup with every standalone term annotated.

    Matching is exact and case-sensitive. Terms are tried longest first; a
    term can only match text that no earlier term has claimed. Text outside
    the annotations is returned as given; `render_paragraph` escapes it first.
    """

    if not paragraph_text:
        return ""

    segments = _segments(paragraph_text)
    ordered = sorted((t for t in terms if t.term), key=lambda t: len(t.term), reverse=True)
    for term in ordered:
        try:
            pattern = _term_pattern(term.term)
        except re.error as exc:
            LOGGER.warning("Skipping term %r: %s", term.term, exc)
            continue
        segments = _apply_term(segments, pattern, term)

    return "".join(chunk for chunk, _ in segments)


def is_heading(paragraph: str) -> bool:
    """Heuristic for short capitalised lines that act as subheadings."""

    text = (paragraph or "").strip()
    if not (HEADING_MIN_LEN <= len(text) < HEADING_MAX_LEN):
        return False
    if text.endswith(SENTENCE_END):
        return False
    if text.startswith(BULLET_MARKERS):
        return False

    tokens = text.split()
    if not (1 <= len(tokens) <= HEADING_MAX_TOKENS):
        return False
    capitalized = sum(1 for tok in tokens if tok[0].isupper())
    return capitalized / len(tokens) >= HEADING_CAPITALIZED_RATIO


def split_paragraphs(content: str) -> list[str]:
    text = (content or "").replace("\r\n", "\n").replace("\r", "\n")
    return [p.strip() for p in PARAGRAPH_SPLIT_RE.split(text) if p.strip()]


def render_paragraph(paragraph: str, terms: Iterable[VocabularyTerm]) -> str:
    text = (paragraph or "").strip()
    if not text:
        return ""
    body = highlight(html.escape(text, quote=False), terms)
    if is_heading(text):
        return f"<h3>{body}</h3>"
    return f"<p>{body}</p>"


def render_content(content: str, terms: Iterable[VocabularyTerm]) -> str:
    """Render an article body (blank-line separated) into paragraph markup."""

    term_list = list(terms)
    rendered = (render_paragraph(p, term_list) for p in split_paragraphs(content))
    return "\n".join(r for r in rendered if r)
