# ===============================================
# tests/test_pipeline.py
# -----------------------------------------------
# Fan-out / fan-in over personas, input checks,
# failure isolation, batch abandonment.
# ===============================================

import asyncio
import threading

import pytest

from cohorte.generate import EchoDevClient, Persona
from cohorte.pipeline import AnalysisCancelled, InputError
from cohorte.threads import InMemoryCommentStore

TEXT = "Line one.\nLine two.\nLine three."


def test_scenario_a_default_persona(make_pipeline):
    result = make_pipeline(EchoDevClient()).analyze_sync(TEXT, [])
    assert [(ln.start, ln.end) for ln in result.lines] == [(0, 9), (10, 19), (20, 31)]
    assert len(result.analyses) == 1
    assert result.analyses[0].persona_name == "Alex Martin"


@pytest.mark.parametrize("text", ["", "   ", "\n\r\n\t", None])
def test_blank_text_is_rejected(make_pipeline, text):
    with pytest.raises(InputError, match="text is required"):
        make_pipeline(EchoDevClient()).analyze_sync(text, [])


def test_personas_truncated_silently(make_pipeline):
    personas = [Persona(name=f"P{i}") for i in range(14)]
    result = make_pipeline(EchoDevClient()).analyze_sync(TEXT, personas)
    assert [a.persona_name for a in result.analyses] == [f"P{i}" for i in range(10)]


def test_text_soft_cap_keeps_prefix_offsets(make_pipeline):
    result = make_pipeline(EchoDevClient(), max_text_chars=12).analyze_sync(TEXT, [])
    assert [(ln.line, ln.start, ln.end, ln.text) for ln in result.lines] == [(1, 0, 9, "Line one."), (2, 10, 12, "Li")]
    assert [c.text for c in result.chunks] == ["Line one.", "Li"]


def test_result_carries_sentence_chunks(make_pipeline):
    result = make_pipeline(EchoDevClient()).analyze_sync(TEXT, [])
    assert [(c.index, c.start, c.end, c.text) for c in result.chunks] == [
        (0, 0, 9, "Line one."),
        (1, 10, 19, "Line two."),
        (2, 20, 31, "Line three."),
    ]
    assert result.to_dict()["chunks"][1] == {"index": 1, "start": 10, "end": 19, "text": "Line two."}


def test_one_failing_persona_does_not_abort_batch(make_pipeline, per_persona_client, make_payload):
    good = make_payload([{"line": 2, "comment": "Why?", "category": "question", "severity": "low", "reaction": None}])
    client = per_persona_client({"Ann": good, "Bob": RuntimeError("timeout"), "Cid": None}, default=good)
    personas = [Persona(name="Ann"), Persona(name="Bob"), Persona(name="Cid"), Persona(name="Dan")]
    result = make_pipeline(client).analyze_sync(TEXT, personas)
    by_name = {a.persona_name: a for a in result.analyses}
    assert [a.persona_name for a in result.analyses] == ["Ann", "Bob", "Cid", "Dan"]
    assert len(by_name["Ann"].annotations) == 1
    assert by_name["Bob"].annotations == [] and by_name["Bob"].overall.liked is False
    assert by_name["Cid"].annotations == []
    assert len(by_name["Dan"].annotations) == 1


def test_requests_are_issued_concurrently(make_pipeline, make_payload):
    barrier = threading.Barrier(3, timeout=5)

    class BarrierClient:
        model = "barrier"

        def complete_json(self, messages, schema, params):
            # only passes if all three personas are in flight at once
            barrier.wait()
            return make_payload([{"line": 1, "comment": "ok", "category": "praise", "severity": "low", "reaction": None}])

    personas = [Persona(name=n) for n in ("A", "B", "C")]
    result = make_pipeline(BarrierClient()).analyze_sync(TEXT, personas)
    assert all(len(a.annotations) == 1 for a in result.analyses)


def test_analyze_document_maps_threads(make_pipeline):
    store = InMemoryCommentStore()
    result = asyncio.run(make_pipeline(EchoDevClient()).analyze_document("doc-1", TEXT, [], store))
    assert len(result.threads) == 1
    thread = store.get_all_threads("doc-1")[0]
    assert (thread.start_offset, thread.end_offset, thread.highlighted_text) == (0, 9, "Line one.")
    assert thread.comments[0].author == "Alex Martin"


def test_abandoned_batch_writes_nothing(make_pipeline):
    store = InMemoryCommentStore()

    async def gone():
        return True

    with pytest.raises(AnalysisCancelled):
        asyncio.run(make_pipeline(EchoDevClient()).analyze_document("doc-1", TEXT, [], store, is_cancelled=gone))
    assert store.get_all_threads("doc-1") == []


def test_input_error_writes_nothing(make_pipeline):
    store = InMemoryCommentStore()
    with pytest.raises(InputError):
        asyncio.run(make_pipeline(EchoDevClient()).analyze_document("doc-1", " ", [], store))
    assert store.get_all_threads("doc-1") == []
