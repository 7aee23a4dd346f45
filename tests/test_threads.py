# ===============================================
# tests/test_threads.py
# -----------------------------------------------
# Annotation -> thread mapping and the two
# comment stores (in-memory, sqlite).
# ===============================================

import threading
import time

import pytest

from cohorte.annotate import Annotation, Category, Overall, PersonaAnalysis, Reaction, Severity
from cohorte.index import index_lines
from cohorte.threads import (
    LOCK_STRIPES,
    CommentStore,
    InMemoryCommentStore,
    SqliteCommentStore,
    ThreadNotFound,
    document_lock,
    group_by_line,
    map_to_threads,
)

TEXT = "Line one.\nLine two.\n\nLine four."
LINES = index_lines(TEXT)


def analysis(name, *anns, pid=None):
    return PersonaAnalysis(persona_name=name, overall=Overall("ok", True), annotations=list(anns), persona_id=pid)


def note(line, comment, category=Category.SUGGESTION, severity=Severity.MEDIUM, reaction=None):
    return Annotation(line=line, comment=comment, category=category, severity=severity, reaction=reaction)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryCommentStore()
    else:
        s = SqliteCommentStore(str(tmp_path / "comments.db"))
        yield s
        s.close()


# -------------------------
# Mapper
# -------------------------
def test_group_by_line_keeps_persona_order():
    a = analysis("Ann", note(2, "a2"), note(1, "a1"))
    b = analysis("Bob", note(2, "b2"))
    grouped = group_by_line([a, b])
    assert [p.persona_name for p, _ in grouped[2]] == ["Ann", "Bob"]
    assert [n.comment for _, n in grouped[1]] == ["a1"]


def test_creates_one_thread_per_annotated_line(store):
    analyses = [
        analysis("Ann", note(1, "Hook is weak", Category.ISSUE, Severity.HIGH, Reaction.DISLIKE), pid="ann"),
        analysis("Bob", note(1, "Agree?", Category.QUESTION), note(4, "Nice close", Category.PRAISE)),
    ]
    threads = map_to_threads(store, "doc", LINES, analyses)
    assert [(t.start_offset, t.end_offset) for t in threads] == [(0, 9), (21, 31)]

    stored = {t.start_offset: t for t in store.get_all_threads("doc")}
    first = stored[0]
    assert first.highlighted_text == "Line one."
    assert [(c.author, c.text, c.author_type) for c in first.comments] == [
        ("Ann", "Hook is weak", "ai"),
        ("Bob", "Agree?", "ai"),
    ]
    assert first.comments[0].persona_id == "ann"
    assert (first.comments[0].category, first.comments[0].severity, first.comments[0].reaction) == (
        "issue",
        "high",
        "dislike",
    )
    assert stored[21].highlighted_text == "Line four."


def test_mapping_is_idempotent(store):
    analyses = [analysis("Ann", note(1, "x"), note(2, "y")), analysis("Bob", note(2, "z"))]
    first = map_to_threads(store, "doc", LINES, analyses)
    snapshot = sorted((t.to_dict() for t in store.get_all_threads("doc")), key=lambda d: d["start_offset"])
    second = map_to_threads(store, "doc", LINES, analyses)
    again = sorted((t.to_dict() for t in store.get_all_threads("doc")), key=lambda d: d["start_offset"])
    assert snapshot == again
    assert [t.id for t in first] == [t.id for t in second]


def test_reanalysis_replaces_ai_comments_and_keeps_user_comments(store):
    map_to_threads(store, "doc", LINES, [analysis("Ann", note(1, "old take"))])
    thread = store.get_all_threads("doc")[0]
    store.add_comment(thread.id, "I disagree", "Writer")

    map_to_threads(store, "doc", LINES, [analysis("Ann", note(1, "new take")), analysis("Bob", note(1, "hm"))])
    updated = store.get_thread(thread.id)
    assert [c.text for c in updated.comments] == ["I disagree", "new take", "hm"]
    assert [c.author_type for c in updated.comments] == ["user", "ai", "ai"]
    assert len(store.get_all_threads("doc")) == 1


def test_lines_without_annotations_are_untouched(store):
    map_to_threads(store, "doc", LINES, [analysis("Ann", note(1, "a"), note(2, "b"))])
    map_to_threads(store, "doc", LINES, [analysis("Ann", note(1, "a2"))])
    by_start = {t.start_offset: t for t in store.get_all_threads("doc")}
    assert [c.text for c in by_start[10].comments] == ["b"]
    assert [c.text for c in by_start[0].comments] == ["a2"]


def test_reuses_user_thread_at_same_offsets(store):
    user = store.create_thread("doc", 10, 19, "Line two.", "#BBDEFB")
    store.save_thread(user)
    map_to_threads(store, "doc", LINES, [analysis("Ann", note(2, "flat"))])
    threads = store.get_all_threads("doc")
    assert len(threads) == 1
    assert threads[0].id == user.id and threads[0].color == "#BBDEFB"


def test_blank_line_annotation_is_not_anchored(store):
    assert LINES[2].text == ""
    threads = map_to_threads(store, "doc", LINES, [analysis("Ann", note(3, "empty line?"))])
    assert threads == []
    assert store.get_all_threads("doc") == []


def test_documents_are_isolated(store):
    map_to_threads(store, "doc-a", LINES, [analysis("Ann", note(1, "a"))])
    map_to_threads(store, "doc-b", LINES, [analysis("Ann", note(1, "b"))])
    assert [t.comments[0].text for t in store.get_all_threads("doc-a")] == ["a"]
    assert [t.comments[0].text for t in store.get_all_threads("doc-b")] == ["b"]


class SlowStore(InMemoryCommentStore):
    """Widens the read/write window so unserialized runs would overlap."""

    def find_thread(self, document_id, start_offset, end_offset):
        time.sleep(0.002)
        return super().find_thread(document_id, start_offset, end_offset)

    def save_threads(self, threads):
        for t in threads:
            time.sleep(0.002)
            self.save_thread(t)


def test_concurrent_runs_on_one_document_never_interleave():
    store = SlowStore()
    runs = {
        "A": [analysis(n, note(1, f"{n} on 1"), note(2, f"{n} on 2"), note(4, f"{n} on 4")) for n in ("Ann", "Amy")],
        "B": [analysis(n, note(1, f"{n} on 1"), note(2, f"{n} on 2"), note(4, f"{n} on 4")) for n in ("Bob", "Ben")],
    }
    authors = {k: {a.persona_name for a in v} for k, v in runs.items()}
    errors = []

    for _ in range(5):
        barrier = threading.Barrier(2)

        def worker(key):
            try:
                barrier.wait()
                map_to_threads(store, "doc", LINES, runs[key])
            except Exception as e:
                errors.append(e)

        workers = [threading.Thread(target=worker, args=(k,)) for k in runs]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        assert errors == []

        threads = store.get_all_threads("doc")
        # one thread per annotated line, never a duplicate at the same offsets
        assert sorted(t.key for t in threads) == [(0, 9), (10, 19), (21, 31)]
        winners = set()
        for t in threads:
            names = {c.author for c in t.comments}
            assert names in authors.values()
            assert len(t.comments) == 2
            winners.add(frozenset(names))
        # the last run to take the lock wrote every line
        assert len(winners) == 1


def test_document_lock_is_stable_and_bounded():
    assert document_lock("doc-1") is document_lock("doc-1")
    pool = {id(document_lock(f"doc-{i}")) for i in range(1000)}
    assert len(pool) <= LOCK_STRIPES


# -------------------------
# Store CRUD
# -------------------------
def test_create_thread_rejects_empty_range(store):
    with pytest.raises(ValueError):
        store.create_thread("doc", 5, 5, "")
    with pytest.raises(ValueError):
        store.create_thread("doc", 9, 2, "")


def test_create_thread_is_not_saved_until_save(store):
    t = store.create_thread("doc", 0, 4, "Line")
    assert store.get_thread(t.id) is None
    store.save_thread(t)
    assert store.get_thread(t.id).highlighted_text == "Line"
    assert t.color == "#FFE082"


def test_comment_lifecycle(store):
    t = store.create_thread("doc", 0, 4, "Line")
    store.save_thread(t)
    c1 = store.add_comment(t.id, "first", "Me")
    c2 = store.add_comment(t.id, "second", "Me")
    assert [c.text for c in store.get_thread(t.id).comments] == ["first", "second"]

    assert store.resolve_thread(t.id).resolved is True
    assert store.get_thread(t.id).resolved is True
    assert store.unresolve_thread(t.id).resolved is False

    remaining = store.delete_comment(t.id, c1.id)
    assert [c.id for c in remaining.comments] == [c2.id]
    # last comment gone -> thread gone
    assert store.delete_comment(t.id, c2.id) is None
    assert store.get_thread(t.id) is None


def test_unknown_ids_raise(store):
    with pytest.raises(ThreadNotFound):
        store.add_comment("thread_missing", "x", "Me")
    with pytest.raises(ThreadNotFound):
        store.resolve_thread("thread_missing")
    t = store.create_thread("doc", 0, 4, "Line")
    store.save_thread(t)
    store.add_comment(t.id, "x", "Me")
    with pytest.raises(ThreadNotFound):
        store.delete_comment(t.id, "comment_missing")


def test_returned_threads_are_copies():
    store = InMemoryCommentStore()
    t = store.create_thread("doc", 0, 4, "Line")
    store.save_thread(t)
    fetched = store.get_thread(t.id)
    fetched.comments.append(None)
    assert store.get_thread(t.id).comments == []


def test_sqlite_store_persists(tmp_path):
    path = str(tmp_path / "c.db")
    s1 = SqliteCommentStore(path)
    map_to_threads(s1, "doc", LINES, [analysis("Ann", note(1, "persisted"))])
    s1.close()

    s2 = SqliteCommentStore(path)
    threads = s2.get_all_threads("doc")
    assert [c.text for c in threads[0].comments] == ["persisted"]
    s2.close()


def test_find_thread_matches_exact_offsets(store):
    t = store.create_thread("doc", 10, 19, "Line two.")
    store.save_thread(t)
    assert store.find_thread("doc", 10, 19).id == t.id
    assert store.find_thread("doc", 10, 18) is None
    assert store.find_thread("other", 10, 19) is None


def test_comment_store_is_abstract():
    with pytest.raises(TypeError):
        CommentStore()

    class Partial(CommentStore):
        def get_thread(self, thread_id):
            return None

    with pytest.raises(TypeError):
        Partial()
