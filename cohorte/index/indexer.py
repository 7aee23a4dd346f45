# AI INSTRUCTION:
# Deterministic text indexing used both as the feedback unit and as the
# highlight anchor. Nothing here may collapse whitespace inside lines:
# offsets must point exactly into the normalized text.

from __future__ import annotations

import re
from typing import List

from .types import IndexedLine, TextChunk

_LINE_BREAKS = re.compile(r"\r\n|\r")
_WS = re.compile(r"\s+")
# greedy up to terminal punctuation (kept with the sentence) or end of text
_SENTENCE = re.compile(r"(.*?\S(?:[.!?…]+|$))")


def normalize_newlines(text: str) -> str:
    """Collapse \\r\\n and \\r into \\n. No other whitespace is touched."""
    return _LINE_BREAKS.sub("\n", text or "")


def index_lines(raw_text: str) -> List[IndexedLine]:
    """
    Split normalized text on newlines into IndexedLine spans.

    Blank lines are kept (they are addressable). start_i = end_{i-1} + 1,
    the +1 being the consumed newline. An empty document yields a single
    empty line 1 so downstream clamping always has a valid target.
    """
    text = normalize_newlines(raw_text)
    lines: List[IndexedLine] = []
    cursor = 0
    for i, segment in enumerate(text.split("\n"), start=1):
        end = cursor + len(segment)
        lines.append(IndexedLine(line=i, start=cursor, end=end, text=segment))
        cursor = end + 1
    return lines


def line_count(lines: List[IndexedLine]) -> int:
    return max(1, len(lines))


def numbered_text(lines: List[IndexedLine]) -> str:
    """Render lines as 'L<n>: text' for the model prompt."""
    return "\n".join(f"L{ln.line}: {ln.text}" for ln in lines)


def chunk_sentences(text: str, max_chunks: int = 200) -> List[TextChunk]:
    """
    Split text into sentence-like chunks, punctuation kept with each one.

    Whitespace is collapsed first, so offsets point into the collapsed text,
    not the original. Returns [] for blank input.
    """
    trimmed = _WS.sub(" ", text or "").strip()
    if not trimmed:
        return []

    parts: List[str] = []
    for m in _SENTENCE.finditer(trimmed):
        seg = m.group(1).strip()
        if seg:
            parts.append(seg)
        if len(parts) >= max_chunks:
            break

    chunks: List[TextChunk] = []
    cursor = 0
    for i, p in enumerate(parts):
        start = trimmed.index(p, cursor)
        end = start + len(p)
        chunks.append(TextChunk(index=i, start=start, end=end, text=p))
        cursor = end
    return chunks
