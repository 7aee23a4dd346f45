# AI INSTRUCTION:
# Comment-thread stores behind one small CRUD interface.
#  - CommentStore: primitives (get/save/delete) + the derived operations
#  - InMemoryCommentStore: dict-backed, for tests and single-process dev
#  - SqliteCommentStore: one row per thread, comments JSON-encoded
# Threads are reliable local storage; errors propagate to the caller.

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional

from .types import DEFAULT_COLOR, Comment, CommentThread, now_iso

logger = logging.getLogger(__name__)


class ThreadNotFound(KeyError):
    pass


def new_thread_id() -> str:
    return f"thread_{uuid.uuid4().hex}"


def new_comment_id() -> str:
    return f"comment_{uuid.uuid4().hex}"


class CommentStore(ABC):
    """Base store. Subclasses implement the four primitives below."""

    # -------------------------
    # Primitives
    # -------------------------
    @abstractmethod
    def get_all_threads(self, document_id: str) -> List[CommentThread]:
        ...

    @abstractmethod
    def get_thread(self, thread_id: str) -> Optional[CommentThread]:
        ...

    @abstractmethod
    def save_thread(self, thread: CommentThread) -> None:
        ...

    @abstractmethod
    def delete_thread(self, thread_id: str) -> None:
        ...

    # -------------------------
    # Derived operations
    # -------------------------
    def save_threads(self, threads: List[CommentThread]) -> None:
        for t in threads:
            self.save_thread(t)

    def create_thread(
        self,
        document_id: str,
        start_offset: int,
        end_offset: int,
        highlighted_text: str,
        color: str = DEFAULT_COLOR,
    ) -> CommentThread:
        """Build a new, unsaved thread anchored to [start_offset, end_offset)."""
        if start_offset < 0 or start_offset >= end_offset:
            raise ValueError(f"invalid thread range: start={start_offset} end={end_offset}")
        return CommentThread(
            id=new_thread_id(),
            document_id=document_id,
            start_offset=start_offset,
            end_offset=end_offset,
            highlighted_text=highlighted_text,
            color=color or DEFAULT_COLOR,
        )

    def find_thread(self, document_id: str, start_offset: int, end_offset: int) -> Optional[CommentThread]:
        for t in self.get_all_threads(document_id):
            if t.key == (start_offset, end_offset):
                return t
        return None

    def _require(self, thread_id: str) -> CommentThread:
        thread = self.get_thread(thread_id)
        if thread is None:
            raise ThreadNotFound(thread_id)
        return thread

    def add_comment(
        self, thread_id: str, text: str, author: str, author_type: str = "user", persona_id: Optional[str] = None
    ) -> Comment:
        thread = self._require(thread_id)
        comment = Comment(id=new_comment_id(), text=text, author=author, author_type=author_type, persona_id=persona_id)
        thread.comments.append(comment)
        thread.updated_at = now_iso()
        self.save_thread(thread)
        return comment

    def resolve_thread(self, thread_id: str) -> CommentThread:
        return self._set_resolved(thread_id, True)

    def unresolve_thread(self, thread_id: str) -> CommentThread:
        return self._set_resolved(thread_id, False)

    def _set_resolved(self, thread_id: str, resolved: bool) -> CommentThread:
        thread = self._require(thread_id)
        thread = replace(thread, resolved=resolved, updated_at=now_iso())
        self.save_thread(thread)
        return thread

    def delete_comment(self, thread_id: str, comment_id: str) -> Optional[CommentThread]:
        """Remove a comment; a thread left empty is deleted and None is returned."""
        thread = self._require(thread_id)
        kept = [c for c in thread.comments if c.id != comment_id]
        if len(kept) == len(thread.comments):
            raise ThreadNotFound(comment_id)
        if not kept:
            self.delete_thread(thread_id)
            logger.info("thread %s deleted (last comment removed)", thread_id)
            return None
        thread = replace(thread, comments=kept, updated_at=now_iso())
        self.save_thread(thread)
        return thread


class InMemoryCommentStore(CommentStore):
    def __init__(self):
        self._threads: Dict[str, CommentThread] = {}
        self._lock = threading.Lock()

    def get_all_threads(self, document_id: str) -> List[CommentThread]:
        with self._lock:
            # copies, so callers never mutate stored state in place
            return [CommentThread.from_dict(t.to_dict()) for t in self._threads.values() if t.document_id == document_id]

    def get_thread(self, thread_id: str) -> Optional[CommentThread]:
        with self._lock:
            t = self._threads.get(thread_id)
            return CommentThread.from_dict(t.to_dict()) if t else None

    def save_thread(self, thread: CommentThread) -> None:
        with self._lock:
            self._threads[thread.id] = CommentThread.from_dict(thread.to_dict())

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            self._threads.pop(thread_id, None)


class SqliteCommentStore(CommentStore):
    _SCHEMA = """
    CREATE TABLE IF NOT EXISTS threads (
        id TEXT PRIMARY KEY,
        document_id TEXT NOT NULL,
        start_offset INTEGER NOT NULL,
        end_offset INTEGER NOT NULL,
        payload TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_threads_doc ON threads(document_id, start_offset, end_offset);
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    # -------------------------
    # Connections
    # -------------------------
    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.executescript(self._SCHEMA)
            logger.info("opened comment store at %s", self.db_path)
        return self._conn

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    # -------------------------
    # Primitives
    # -------------------------
    def get_all_threads(self, document_id: str) -> List[CommentThread]:
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT payload FROM threads WHERE document_id = ? ORDER BY start_offset, end_offset;",
                (document_id,),
            ).fetchall()
        return [CommentThread.from_dict(json.loads(r[0])) for r in rows]

    def get_thread(self, thread_id: str) -> Optional[CommentThread]:
        with self._lock:
            row = self._get_conn().execute(
                "SELECT payload FROM threads WHERE id = ? LIMIT 1;", (thread_id,)
            ).fetchone()
        return CommentThread.from_dict(json.loads(row[0])) if row else None

    def find_thread(self, document_id: str, start_offset: int, end_offset: int) -> Optional[CommentThread]:
        with self._lock:
            row = self._get_conn().execute(
                "SELECT payload FROM threads WHERE document_id = ? AND start_offset = ? AND end_offset = ? LIMIT 1;",
                (document_id, start_offset, end_offset),
            ).fetchone()
        return CommentThread.from_dict(json.loads(row[0])) if row else None

    def save_thread(self, thread: CommentThread) -> None:
        self.save_threads([thread])

    def save_threads(self, threads: List[CommentThread]) -> None:
        """All-or-nothing: one transaction for the whole batch."""
        rows = [
            (t.id, t.document_id, t.start_offset, t.end_offset, json.dumps(t.to_dict(), ensure_ascii=False))
            for t in threads
        ]
        with self._lock:
            conn = self._get_conn()
            with conn:
                conn.executemany(
                    "INSERT OR REPLACE INTO threads(id, document_id, start_offset, end_offset, payload) "
                    "VALUES (?, ?, ?, ?, ?);",
                    rows,
                )

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            conn = self._get_conn()
            with conn:
                conn.execute("DELETE FROM threads WHERE id = ?;", (thread_id,))
