"""Whitespace normalization and word-budget enforcement helpers."""

from __future__ import annotations

import math
import re
from typing import List, Optional


_WHITESPACE_RE = re.compile(r"\s+")
_HORIZONTAL_WS_RE = re.compile(r"[^\S\n]+")
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

# Leading list markers: bullets, "1." / "2)" / "(3)" enumerations, markdown headings.
_MARKER_RE = re.compile(
    r"""^(?:
        [•·▪●–—]+\s*                # typographic bullets and dashes
        | [-*+]+(?:\s+|$)           # ascii bullets, "-5" stays a number
        | \(?\d{1,3}[.)](?:\s+|$)   # 1.  2)  (3), "1.5" stays a number
        | \#{1,6}(?:\s+|$)          # headings
    )""",
    re.VERBOSE,
)


def _split_lines(text: str) -> List[str]:
    return _LINE_BREAK_RE.split(text)


def normalize(text: Optional[str], keep_lines: bool = False) -> str:
    """
    Canonicalize whitespace.

    Paragraph mode collapses every whitespace run, newlines included, into a
    single space. Line mode keeps line boundaries, collapses whitespace inside
    each line and drops blank lines. Both modes trim the result.
    """
    if not text:
        return ""
    if not keep_lines:
        return _WHITESPACE_RE.sub(" ", text).strip()

    lines = (_HORIZONTAL_WS_RE.sub(" ", line).strip() for line in _split_lines(text))
    return "\n".join(line for line in lines if line)


def count_words(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(text.split())


def count_lines(text: str) -> int:
    return len(text.split("\n"))


def trim_to_max(text: Optional[str], max_words: int) -> str:
    """Keep the first ``max_words`` words, rejoined with single spaces."""
    if max_words < 0:
        raise ValueError("max_words must be non-negative")
    if not text:
        return ""
    return " ".join(text.split()[:max_words])


def strip_markers(text: Optional[str], keep_lines: bool = False) -> str:
    """Remove leading bullets, enumerations and heading marks from every line."""
    if not text:
        return ""
    cleaned = []
    for line in _split_lines(text):
        line = line.strip()
        # "- 1. item" carries two markers
        while True:
            stripped = _MARKER_RE.sub("", line, count=1)
            if stripped == line:
                break
            line = stripped.strip()
        if line:
            cleaned.append(line)
    return normalize("\n".join(cleaned), keep_lines=keep_lines)


def reflow_to_lines(text: Optional[str], line_count: int) -> str:
    """
    Redistribute the words of ``text`` over exactly ``line_count`` lines.

    Each line receives ``ceil(words / line_count)`` words; lines left over once
    the words run out are empty. Text without words yields ``line_count``
    empty lines.
    """
    if line_count < 1:
        raise ValueError("line_count must be at least 1")
    words = text.split() if text else []
    if not words:
        return "\n" * (line_count - 1)

    chunk_size = math.ceil(len(words) / line_count)
    lines = [
        " ".join(words[index * chunk_size : (index + 1) * chunk_size])
        for index in range(line_count)
    ]
    return "\n".join(lines)
