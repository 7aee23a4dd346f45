# AI INSTRUCTION:
# Total, failure-free coercion of untrusted model output into Annotation.
# Every function here must return a valid value for ANY input.
# This is the boundary past which no malformed data propagates.

from __future__ import annotations

import logging
import math
from typing import Any, List, Mapping, Optional, Tuple

from .config import POLICY, PolicyConfig
from .types import Annotation, Category, Overall, Reaction, Severity

logger = logging.getLogger(__name__)


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    if hasattr(raw, "model_dump"):
        try:
            return raw.model_dump()
        except Exception:
            return {}
    return {}


def _float_to_line(f: float, upper: int) -> int:
    if math.isnan(f):
        return 1
    if math.isinf(f):
        return upper if f > 0 else 1
    return int(f)


def coerce_line(value: Any, line_count: int) -> int:
    """Coerce to int (non-numeric/absent/NaN -> 1, +inf -> last line) and clamp into [1, line_count]."""
    upper = max(1, int(line_count))
    n = 1
    if isinstance(value, bool) or value is None:
        n = 1
    elif isinstance(value, int):
        n = value
    elif isinstance(value, float):
        n = _float_to_line(value, upper)
    elif isinstance(value, str):
        try:
            n = _float_to_line(float(value.strip()), upper)
        except ValueError:
            n = 1
    return min(max(n, 1), upper)


def coerce_comment(value: Any, max_chars: int) -> str:
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    return text.strip()[:max_chars]


def coerce_category(value: Any) -> Category:
    # exact tags only; default is "something to act on", neither falsely positive nor falsely severe
    if isinstance(value, str):
        try:
            return Category(value)
        except ValueError:
            pass
    return Category.SUGGESTION


def coerce_severity(value: Any) -> Severity:
    if isinstance(value, str):
        try:
            return Severity(value)
        except ValueError:
            pass
    return Severity.MEDIUM


def coerce_reaction(value: Any) -> Optional[Reaction]:
    """Only the exact tags survive; anything else becomes absent, never invented."""
    if value == "like":
        return Reaction.LIKE
    if value == "dislike":
        return Reaction.DISLIKE
    return None


def coerce_liked(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return False


def normalize_annotation(raw: Any, line_count: int, config: PolicyConfig = POLICY) -> Annotation:
    data = _as_mapping(raw)
    category = coerce_category(data.get("category"))
    severity = coerce_severity(data.get("severity"))
    reaction = coerce_reaction(data.get("reaction"))
    # dislike is only eligible on a severe issue
    if reaction is Reaction.DISLIKE and not (category is Category.ISSUE and severity is Severity.HIGH):
        reaction = None
    ann = Annotation(
        line=coerce_line(data.get("line"), line_count),
        comment=coerce_comment(data.get("comment"), config.comment_max_chars),
        category=category,
        severity=severity,
        reaction=reaction,
    )
    if ann.line != data.get("line"):
        logger.debug("line %r coerced to %d (line_count=%d)", data.get("line"), ann.line, line_count)
    return ann


def normalize_annotations(raw_items: Any, line_count: int, config: PolicyConfig = POLICY) -> List[Annotation]:
    if not isinstance(raw_items, (list, tuple)):
        return []
    return [normalize_annotation(item, line_count, config) for item in raw_items]


def normalize_overall(raw: Any, config: PolicyConfig = POLICY) -> Overall:
    data = _as_mapping(raw)
    return Overall(
        comment=coerce_comment(data.get("comment"), config.overall_comment_max_chars),
        liked=coerce_liked(data.get("liked")),
    )


def normalize_payload(raw: Any, line_count: int, config: PolicyConfig = POLICY) -> Tuple[Overall, List[Annotation]]:
    """Normalize a whole persona payload into (overall, annotations)."""
    data = _as_mapping(raw)
    return (
        normalize_overall(data.get("overall"), config),
        normalize_annotations(data.get("annotations"), line_count, config),
    )
