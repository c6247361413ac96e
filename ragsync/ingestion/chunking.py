"""Utilities for transforming raw text into embedding-ready chunks.

Two strategies are available:

- *Structured* text (Markdown-like prose) is split on ``##``/``###`` heading
  boundaries so each chunk stays topically coherent. Tiny sections are treated
  as noise and oversized sections fall back to fixed windows.
- *Unstructured* text (code, plain dumps) is cut into fixed-size windows that
  overlap slightly so context is not lost at a boundary.
"""

from __future__ import annotations

import re
from typing import List

MAX_SECTION_CHARS = 1500
MIN_SECTION_CHARS = 20
WINDOW_SIZE = 800
WINDOW_OVERLAP = 100

_HEADING_SPLIT = re.compile(r"\n(?=#{2,3} )")
_HEADING_LINE = re.compile(r"^#{2,3} ", re.MULTILINE)


def looks_structured(text: str) -> bool:
    """Return ``True`` when ``text`` contains ``##`` or ``###`` headings."""

    return bool(_HEADING_LINE.search(text or ""))


def _window_chunks(text: str, size: int, overlap: int) -> List[str]:
    chunks: List[str] = []
    start = 0
    while start < len(text):
        end = start + size
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap
    return chunks


def chunk_text(
    text: str,
    is_structured: bool = False,
    *,
    max_chars: int = MAX_SECTION_CHARS,
    min_chars: int = MIN_SECTION_CHARS,
    window_size: int = WINDOW_SIZE,
    overlap: int = WINDOW_OVERLAP,
) -> List[str]:
    """Split ``text`` into an ordered list of non-empty chunks.

    Parameters
    ----------
    text:
        Normalized source text. Leading/trailing whitespace is ignored.
    is_structured:
        When true, split on heading boundaries; otherwise use fixed windows.

    Returns
    -------
    list[str]
        Empty only when ``text`` is blank.
    """

    trimmed = (text or "").strip()
    if not trimmed:
        return []

    if not is_structured:
        return _window_chunks(trimmed, window_size, overlap)

    chunks: List[str] = []
    for section in _HEADING_SPLIT.split(trimmed):
        section = section.strip()
        if len(section) < min_chars:
            continue
        if len(section) <= max_chars:
            chunks.append(section)
        else:
            chunks.extend(_window_chunks(section, window_size, overlap))
    return chunks or [trimmed[:max_chars]]


__all__ = [
    "MAX_SECTION_CHARS",
    "MIN_SECTION_CHARS",
    "WINDOW_OVERLAP",
    "WINDOW_SIZE",
    "chunk_text",
    "looks_structured",
]
