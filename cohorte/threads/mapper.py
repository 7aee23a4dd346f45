# AI INSTRUCTION:
# Map finalized per-persona annotations (keyed by line) onto comment threads
# keyed by exact (start_offset, end_offset) per document.
#  - one thread per annotated line; reuse the stored thread at the same offsets
#  - AI comments of a re-analysis replace the previous AI comments wholesale;
#    user comments on the thread are kept
#  - lines without annotations this run are left untouched, never deleted
#  - idempotent: same text + same personas -> same thread content
#  - writes for one document are serialized; the batch is saved in one call

from __future__ import annotations

import logging
import threading
import uuid
import zlib
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from cohorte.annotate import Annotation, PersonaAnalysis
from cohorte.index import IndexedLine
from .store import CommentStore
from .types import DEFAULT_COLOR, Comment, CommentThread, now_iso

logger = logging.getLogger(__name__)

_AI_COMMENT_NS = uuid.UUID("9f1c4a52-7d0e-4c36-9a57-3f6f0c1b2e84")

# fixed stripe pool keyed by document id; unrelated documents may share a stripe
LOCK_STRIPES = 64
_doc_locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


def document_lock(document_id: str) -> threading.Lock:
    return _doc_locks[zlib.crc32(document_id.encode("utf-8")) % LOCK_STRIPES]


def group_by_line(analyses: Sequence[PersonaAnalysis]) -> Dict[int, List[Tuple[PersonaAnalysis, Annotation]]]:
    """line -> [(persona analysis, annotation)], personas in input order."""
    by_line: Dict[int, List[Tuple[PersonaAnalysis, Annotation]]] = defaultdict(list)
    for analysis in analyses:
        for ann in analysis.annotations:
            by_line[ann.line].append((analysis, ann))
    return dict(by_line)


def _ai_comment(
    thread_id: str, slot: int, analysis: PersonaAnalysis, ann: Annotation, previous: Dict[str, Comment]
) -> Comment:
    # deterministic id so repeated runs reproduce the same comment
    key = f"{thread_id}|{slot}|{analysis.persona_id or analysis.persona_name}|{ann.comment}"
    cid = "ai_" + uuid.uuid5(_AI_COMMENT_NS, key).hex
    prior = previous.get(cid)
    return Comment(
        id=cid,
        text=ann.comment,
        author=analysis.persona_name,
        author_type="ai",
        timestamp=prior.timestamp if prior else now_iso(),
        persona_id=analysis.persona_id,
        category=ann.category.value,
        severity=ann.severity.value,
        reaction=ann.reaction.value if ann.reaction else None,
    )


def build_threads(
    store: CommentStore,
    document_id: str,
    lines: Sequence[IndexedLine],
    analyses: Sequence[PersonaAnalysis],
    color: str = DEFAULT_COLOR,
) -> List[CommentThread]:
    """Compute the threads to write, without writing them."""
    table = {ln.line: ln for ln in lines}
    out: List[CommentThread] = []

    for line_no, pairs in sorted(group_by_line(analyses).items()):
        ln = table.get(line_no)
        if ln is None or ln.start >= ln.end:
            # blank or unknown line: no non-empty range to anchor on
            logger.debug("skipping %d annotation(s) on unanchorable line %d", len(pairs), line_no)
            continue

        thread = store.find_thread(document_id, ln.start, ln.end)
        if thread is None:
            thread = store.create_thread(document_id, ln.start, ln.end, ln.text, color)

        previous = {c.id: c for c in thread.comments if c.is_ai}
        user_comments = [c for c in thread.comments if not c.is_ai]
        ai_comments = [_ai_comment(thread.id, i, a, ann, previous) for i, (a, ann) in enumerate(pairs)]
        comments = user_comments + ai_comments

        if comments == thread.comments and thread.highlighted_text == ln.text:
            out.append(thread)
            continue
        out.append(replace(thread, comments=comments, highlighted_text=ln.text, updated_at=now_iso()))
    return out


def map_to_threads(
    store: CommentStore,
    document_id: str,
    lines: Sequence[IndexedLine],
    analyses: Sequence[PersonaAnalysis],
    color: str = DEFAULT_COLOR,
) -> List[CommentThread]:
    """Create or update one thread per annotated line and persist them together."""
    with document_lock(document_id):
        threads = build_threads(store, document_id, lines, analyses, color)
        store.save_threads(threads)
    logger.info("document %s: mapped %d thread(s) from %d persona(s)", document_id, len(threads), len(analyses))
    return threads
