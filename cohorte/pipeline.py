# AI INSTRUCTION:
# One analysis pass over one document:
#   text -> index_lines -> (per persona, concurrently) request_feedback
#   -> finalized PersonaAnalysis list -> optionally map_to_threads.
# Fan-out / fan-in: one task per persona, joined as a batch. A persona's
# failure is isolated to its own stub. Nothing is written to the thread
# store unless the whole batch finished and was not abandoned.

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from cohorte.annotate import PersonaAnalysis
from cohorte.generate import DEFAULT_PERSONA, FeedbackRequester, Persona
from cohorte.index import IndexedLine, TextChunk, chunk_sentences, index_lines
from cohorte.threads import CommentStore, CommentThread, map_to_threads

logger = logging.getLogger(__name__)


class InputError(ValueError):
    """Rejected at the boundary; nothing was processed."""


class AnalysisCancelled(Exception):
    """The caller abandoned the batch; results were discarded."""


@dataclass
class AnalysisResult:
    lines: List[IndexedLine]
    analyses: List[PersonaAnalysis]
    threads: List[CommentThread] = field(default_factory=list)
    chunks: List[TextChunk] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines": [ln.to_dict() for ln in self.lines],
            "analyses": [a.to_dict() for a in self.analyses],
            "threads": [t.to_dict() for t in self.threads],
            "chunks": [c.to_dict() for c in self.chunks],
        }


class FeedbackPipeline:
    def __init__(self, requester: FeedbackRequester, max_personas: int = 10, max_text_chars: int = 8000):
        self.requester = requester
        self.max_personas = max_personas
        self.max_text_chars = max_text_chars

    def prepare(self, text: str, personas: Sequence[Persona]) -> tuple:
        """Validate input; returns (lines, personas) ready for the batch."""
        if not isinstance(text, str) or not text.strip():
            raise InputError("text is required")
        # soft cap: cutting the tail leaves offsets of the kept prefix unchanged
        lines = index_lines(text[: self.max_text_chars])
        chosen = list(personas)[: self.max_personas] or [DEFAULT_PERSONA]
        return lines, chosen

    async def _one(self, persona: Persona, lines: List[IndexedLine]) -> PersonaAnalysis:
        # model clients are blocking; each persona runs on its own worker thread
        return await asyncio.to_thread(self.requester.request_feedback, persona, lines)

    async def analyze(self, text: str, personas: Sequence[Persona]) -> AnalysisResult:
        lines, chosen = self.prepare(text, personas)
        started = time.perf_counter()

        results = await asyncio.gather(*(self._one(p, lines) for p in chosen), return_exceptions=True)

        analyses: List[PersonaAnalysis] = []
        for persona, res in zip(chosen, results):
            if isinstance(res, Exception):
                logger.warning("persona %s: task failed: %s", persona.name, res)
                analyses.append(PersonaAnalysis.empty(persona.name, persona.id))
            elif isinstance(res, BaseException):
                raise res
            else:
                analyses.append(res)

        logger.info(
            "analyzed %d line(s) with %d persona(s) in %.2fs",
            len(lines), len(chosen), time.perf_counter() - started,
        )
        return AnalysisResult(lines=lines, analyses=analyses, chunks=chunk_sentences(text[: self.max_text_chars]))

    async def analyze_document(
        self,
        document_id: str,
        text: str,
        personas: Sequence[Persona],
        store: CommentStore,
        is_cancelled: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AnalysisResult:
        """Analyze, then map every annotation to threads, or write nothing."""
        result = await self.analyze(text, personas)
        if is_cancelled is not None and await is_cancelled():
            logger.info("document %s: analysis abandoned by caller, results discarded", document_id)
            raise AnalysisCancelled(document_id)
        result.threads = map_to_threads(store, document_id, result.lines, result.analyses)
        return result

    def analyze_sync(self, text: str, personas: Sequence[Persona]) -> AnalysisResult:
        return asyncio.run(self.analyze(text, personas))
