# Makes annotate/ importable: types, normalizer and policy engine.

from .config import POLICY, PolicyConfig
from .types import Annotation, Category, Severity, Reaction, Overall, PersonaAnalysis
from .normalize import normalize_annotation, normalize_annotations, normalize_overall, normalize_payload
from .policy import apply_policy, reconcile_liked, finalize_analysis, max_per_persona, max_reactions

__all__ = [
    "POLICY",
    "PolicyConfig",
    "Annotation",
    "Category",
    "Severity",
    "Reaction",
    "Overall",
    "PersonaAnalysis",
    "normalize_annotation",
    "normalize_annotations",
    "normalize_overall",
    "normalize_payload",
    "apply_policy",
    "reconcile_liked",
    "finalize_analysis",
    "max_per_persona",
    "max_reactions",
]
