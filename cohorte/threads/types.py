# AI INSTRUCTION:
# Comment threads anchored to [start_offset, end_offset) of a document.
# Plain dataclasses with dict round-tripping for the stores and the API.

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

DEFAULT_COLOR = "#FFE082"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Comment:
    id: str
    text: str
    author: str
    author_type: str = "user"  # "user" | "ai"
    timestamp: str = field(default_factory=now_iso)
    persona_id: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    reaction: Optional[str] = None

    @property
    def is_ai(self) -> bool:
        return self.author_type == "ai"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Comment":
        return cls(**{k: d.get(k) for k in cls.__dataclass_fields__ if k in d})


@dataclass
class CommentThread:
    id: str
    document_id: str
    start_offset: int
    end_offset: int
    highlighted_text: str
    comments: List[Comment] = field(default_factory=list)
    resolved: bool = False
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    color: str = DEFAULT_COLOR

    @property
    def key(self) -> tuple:
        return self.start_offset, self.end_offset

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CommentThread":
        data = {k: d[k] for k in cls.__dataclass_fields__ if k in d}
        data["comments"] = [Comment.from_dict(c) for c in d.get("comments", [])]
        return cls(**data)
