# Makes threads/ importable: types, stores and the annotation -> thread mapper.

from .types import Comment, CommentThread, DEFAULT_COLOR
from .store import CommentStore, InMemoryCommentStore, SqliteCommentStore, ThreadNotFound
from .mapper import LOCK_STRIPES, build_threads, document_lock, group_by_line, map_to_threads

__all__ = [
    "Comment",
    "CommentThread",
    "DEFAULT_COLOR",
    "CommentStore",
    "InMemoryCommentStore",
    "SqliteCommentStore",
    "ThreadNotFound",
    "LOCK_STRIPES",
    "document_lock",
    "map_to_threads",
    "build_threads",
    "group_by_line",
]
