# AI INSTRUCTION:
# Define the trusted annotation types. Anything typed here has already been
# through normalize.py; model output never reaches these classes directly.

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class Category(str, Enum):
    PRAISE = "praise"
    SUGGESTION = "suggestion"
    ISSUE = "issue"
    QUESTION = "question"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Reaction(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


# lower wins
CATEGORY_RANK: Dict[Category, int] = {
    Category.ISSUE: 0,
    Category.SUGGESTION: 1,
    Category.QUESTION: 2,
    Category.PRAISE: 3,
}
SEVERITY_RANK: Dict[Severity, int] = {
    Severity.HIGH: 0,
    Severity.MEDIUM: 1,
    Severity.LOW: 2,
}


@dataclass(frozen=True)
class Annotation:
    """One line-anchored note from one persona."""
    line: int
    comment: str
    category: Category
    severity: Severity
    reaction: Optional[Reaction] = None

    @property
    def is_severe_issue(self) -> bool:
        return self.category is Category.ISSUE and self.severity is Severity.HIGH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "comment": self.comment,
            "category": self.category.value,
            "severity": self.severity.value,
            "reaction": self.reaction.value if self.reaction else None,
        }


@dataclass
class Overall:
    comment: str = ""
    liked: bool = False


@dataclass
class PersonaAnalysis:
    """Finalized feedback of one persona for one analysis run."""
    persona_name: str
    overall: Overall = field(default_factory=Overall)
    annotations: List[Annotation] = field(default_factory=list)
    persona_id: Optional[str] = None

    @classmethod
    def empty(cls, persona_name: str, persona_id: Optional[str] = None) -> "PersonaAnalysis":
        """Stub used when the model output could not be used at all."""
        return cls(persona_name=persona_name, overall=Overall(comment="", liked=False), persona_id=persona_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona_name": self.persona_name,
            "persona_id": self.persona_id,
            "overall": asdict(self.overall),
            "annotations": [a.to_dict() for a in self.annotations],
        }
