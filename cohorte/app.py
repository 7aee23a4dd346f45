# ============================================================
# Cohorte FastAPI App
# ------------------------------------------------------------
# This app wires everything together:
#   - Line indexing of the submitted script
#   - Per-persona feedback (Ollama, OpenAI, or Echo clients)
#   - Annotation normalization + policy
#   - Mapping of annotations to margin comment threads
# ============================================================

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# --- Local imports ---
from cohorte.settings import settings, setup_logging
from cohorte.generate import FeedbackRequester, Persona, build_model_client
from cohorte.pipeline import AnalysisCancelled, FeedbackPipeline, InputError
from cohorte.threads import (
    DEFAULT_COLOR,
    CommentStore,
    InMemoryCommentStore,
    SqliteCommentStore,
    ThreadNotFound,
)

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# 🔧 Model client + store selection
# ------------------------------------------------------------
model_client = build_model_client(settings)
pipeline = FeedbackPipeline(
    requester=FeedbackRequester(model_client=model_client),
    max_personas=settings.MAX_PERSONAS,
    max_text_chars=settings.MAX_TEXT_CHARS,
)


def build_store(db_path: str) -> CommentStore:
    if db_path:
        return SqliteCommentStore(db_path)
    return InMemoryCommentStore()


store: CommentStore = build_store(settings.COMMENT_DB_PATH)

# ------------------------------------------------------------
# 🚀 FastAPI init
# ------------------------------------------------------------
app = FastAPI(title="Cohorte API", version="0.3")

# ------------------------------------------------------------
# 📦 Pydantic models
# ------------------------------------------------------------
class PersonaIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    city: Optional[str] = None
    mini_description: Optional[str] = None
    biography: Optional[str] = Field(default=None, validation_alias=AliasChoices("biography", "bio"))
    salary_eur: Optional[float] = None

    def to_persona(self, position: int) -> Persona:
        name = (self.name or "").strip() or f"{self.first_name or ''} {self.last_name or ''}".strip()
        return Persona(
            name=name or f"Persona {position}",
            city=self.city,
            mini_description=self.mini_description,
            biography=self.biography,
            id=self.id,
        )


class AnalyzeRequest(BaseModel):
    text: str = ""
    personas: List[PersonaIn] = []

    def to_personas(self) -> List[Persona]:
        return [p.to_persona(i) for i, p in enumerate(self.personas, start=1)]


class IndexedLineOut(BaseModel):
    line: int
    start: int
    end: int
    text: str


class TextChunkOut(BaseModel):
    index: int
    start: int
    end: int
    text: str


class AnnotationOut(BaseModel):
    line: int
    comment: str
    category: str
    severity: str
    reaction: Optional[str] = None


class OverallOut(BaseModel):
    comment: str
    liked: bool


class PersonaAnalysisOut(BaseModel):
    persona_name: str
    persona_id: Optional[str] = None
    overall: OverallOut
    annotations: List[AnnotationOut]


class CommentOut(BaseModel):
    id: str
    text: str
    author: str
    author_type: str
    timestamp: str
    persona_id: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    reaction: Optional[str] = None


class ThreadOut(BaseModel):
    id: str
    document_id: str
    start_offset: int
    end_offset: int
    highlighted_text: str
    comments: List[CommentOut]
    resolved: bool
    created_at: str
    updated_at: str
    color: str


class AnalyzeResponse(BaseModel):
    lines: List[IndexedLineOut]
    analyses: List[PersonaAnalysisOut]
    chunks: List[TextChunkOut] = []


class DocumentAnalyzeResponse(AnalyzeResponse):
    threads: List[ThreadOut]


class ThreadCreate(BaseModel):
    start_offset: int
    end_offset: int
    highlighted_text: str = ""
    color: Optional[str] = None
    comment: Optional[str] = None
    author: str = "You"


class CommentCreate(BaseModel):
    text: str
    author: str = "You"


# ------------------------------------------------------------
# 💬 Analysis routes
# ------------------------------------------------------------
@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(req: AnalyzeRequest):
    try:
        result = await pipeline.analyze(req.text, req.to_personas())
        return result.to_dict()
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("analysis failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/documents/{document_id}/analyze", response_model=DocumentAnalyzeResponse)
async def analyze_document(document_id: str, req: AnalyzeRequest, request: Request):
    try:
        result = await pipeline.analyze_document(
            document_id, req.text, req.to_personas(), store, is_cancelled=request.is_disconnected
        )
        return result.to_dict()
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisCancelled:
        raise HTTPException(status_code=499, detail="client closed request")
    except Exception as e:
        logger.exception("document analysis failed for %s", document_id)
        raise HTTPException(status_code=500, detail=str(e))


# ------------------------------------------------------------
# 🧵 Comment thread routes
# ------------------------------------------------------------
def _thread_or_404(document_id: str, thread_id: str):
    thread = store.get_thread(thread_id)
    if thread is None or thread.document_id != document_id:
        raise HTTPException(status_code=404, detail=f"thread not found: {thread_id}")
    return thread


@app.get("/documents/{document_id}/threads", response_model=List[ThreadOut])
def list_threads(document_id: str):
    threads = sorted(store.get_all_threads(document_id), key=lambda t: (t.start_offset, t.end_offset))
    return [t.to_dict() for t in threads]


@app.post("/documents/{document_id}/threads", response_model=ThreadOut)
def create_thread(document_id: str, body: ThreadCreate):
    try:
        thread = store.create_thread(
            document_id, body.start_offset, body.end_offset, body.highlighted_text, body.color or DEFAULT_COLOR
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.save_thread(thread)
    if body.comment:
        store.add_comment(thread.id, body.comment, body.author)
    return store.get_thread(thread.id).to_dict()


@app.post("/documents/{document_id}/threads/{thread_id}/comments", response_model=ThreadOut)
def add_comment(document_id: str, thread_id: str, body: CommentCreate):
    _thread_or_404(document_id, thread_id)
    store.add_comment(thread_id, body.text, body.author)
    return store.get_thread(thread_id).to_dict()


@app.post("/documents/{document_id}/threads/{thread_id}/resolve", response_model=ThreadOut)
def resolve_thread(document_id: str, thread_id: str):
    _thread_or_404(document_id, thread_id)
    return store.resolve_thread(thread_id).to_dict()


@app.post("/documents/{document_id}/threads/{thread_id}/unresolve", response_model=ThreadOut)
def unresolve_thread(document_id: str, thread_id: str):
    _thread_or_404(document_id, thread_id)
    return store.unresolve_thread(thread_id).to_dict()


@app.delete("/documents/{document_id}/threads/{thread_id}/comments/{comment_id}")
def delete_comment(document_id: str, thread_id: str, comment_id: str):
    _thread_or_404(document_id, thread_id)
    try:
        thread = store.delete_comment(thread_id, comment_id)
    except ThreadNotFound:
        raise HTTPException(status_code=404, detail=f"comment not found: {comment_id}")
    return {"deleted": comment_id, "thread": thread.to_dict() if thread else None}


# ------------------------------------------------------------
# 🧭 Health checks
# ------------------------------------------------------------
@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "env": settings.ENV,
        "debug": settings.DEBUG,
        "app": settings.app_name,
        "engine": type(model_client).__name__,
        "model": getattr(model_client, "model", None),
    }


@app.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV}


@app.get("/")
def hello():
    return {"message": "Cohorte service running."}
