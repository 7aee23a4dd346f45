# Makes index/ importable and exposes the indexer.

from .indexer import index_lines, line_count, numbered_text, normalize_newlines, chunk_sentences
from .types import IndexedLine, TextChunk

__all__ = [
    "index_lines",
    "line_count",
    "numbered_text",
    "normalize_newlines",
    "chunk_sentences",
    "IndexedLine",
    "TextChunk",
]
