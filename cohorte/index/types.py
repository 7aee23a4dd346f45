# AI INSTRUCTION:
# Define the span types produced by the indexer.
# Offsets are character offsets into the normalized text.

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class IndexedLine:
    """One addressable line: 1-based number, [start, end) offsets, raw text."""
    line: int
    start: int
    end: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TextChunk:
    """Sentence-like span: 0-based index, [start, end) offsets, text."""
    index: int
    start: int
    end: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
