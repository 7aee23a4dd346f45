# AI INSTRUCTION:
# Business rules over normalized annotations of ONE persona.
# Steps run in order: dedup per line -> sort -> cap -> reaction sparsity
# -> single fact-check -> liked reconciliation.
# Strictly reductive: no step may add back an annotation dropped earlier.
# Deterministic: no randomness, stable tie-breaks.

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from .config import POLICY, PolicyConfig
from .types import (
    CATEGORY_RANK,
    SEVERITY_RANK,
    Annotation,
    Category,
    Overall,
    PersonaAnalysis,
    Reaction,
    Severity,
)

logger = logging.getLogger(__name__)


def _rank(a: Annotation) -> Tuple[int, int]:
    return CATEGORY_RANK[a.category], SEVERITY_RANK[a.severity]


def _better(a: Annotation, b: Annotation) -> bool:
    """True if a should replace b; shorter comment breaks (category, severity) ties."""
    return (*_rank(a), len(a.comment)) < (*_rank(b), len(b.comment))


def max_per_persona(line_count: int, config: PolicyConfig = POLICY) -> int:
    wanted = math.ceil(max(1, line_count) / config.lines_per_annotation)
    return min(max(wanted, config.min_annotations), config.max_annotations)


def max_reactions(n: int, config: PolicyConfig = POLICY) -> int:
    return max(1, math.floor(config.reaction_ratio * n))


# -------------------------
# Steps
# -------------------------
def dedupe_by_line(annotations: List[Annotation]) -> List[Annotation]:
    """Keep exactly one annotation per line; first seen wins full ties."""
    best: Dict[int, Annotation] = {}
    for a in annotations:
        cur = best.get(a.line)
        if cur is None or _better(a, cur):
            best[a.line] = a
    return list(best.values())


def sort_by_priority(annotations: List[Annotation]) -> List[Annotation]:
    return sorted(annotations, key=lambda a: (*_rank(a), a.line))


def limit_reactions(annotations: List[Annotation], config: PolicyConfig = POLICY) -> List[Annotation]:
    budget = max_reactions(len(annotations), config)
    kept = 0
    out: List[Annotation] = []
    for a in annotations:
        reaction = a.reaction
        if reaction is Reaction.DISLIKE and not a.is_severe_issue:
            reaction = None
        if reaction is not None:
            if kept >= budget:
                reaction = None
            else:
                kept += 1
        out.append(a if reaction is a.reaction else replace(a, reaction=reaction))
    return out


def fact_check_pattern(config: PolicyConfig = POLICY) -> re.Pattern:
    """Leading '<label>:' (repeated labels included), case-insensitive."""
    alts = []
    for label in config.fact_check_labels:
        words = re.split(r"[\s-]+", label.strip())
        alts.append(r"[\s-]?".join(re.escape(w) for w in words))
    return re.compile(r"^(?:\s*(?:%s)\s*:\s*)+" % "|".join(alts), re.IGNORECASE)


def enforce_single_fact_check(annotations: List[Annotation], config: PolicyConfig = POLICY) -> List[Annotation]:
    pattern = fact_check_pattern(config)
    marked = [i for i, a in enumerate(annotations) if pattern.match(a.comment)]
    if len(marked) <= 1:
        return list(annotations)

    def _first(category: Category, severity: Severity) -> Optional[int]:
        for i in marked:
            a = annotations[i]
            if a.category is category and a.severity is severity:
                return i
        return None

    keep = _first(Category.ISSUE, Severity.HIGH)
    if keep is None:
        keep = _first(Category.ISSUE, Severity.MEDIUM)
    if keep is None:
        keep = marked[0]

    out = list(annotations)
    for i in marked:
        if i == keep:
            continue
        a = out[i]
        category = a.category
        # unverified claim becomes a query rather than a flagged defect
        if category is Category.ISSUE and a.severity is not Severity.HIGH:
            category = Category.QUESTION
        out[i] = replace(a, comment=pattern.sub("", a.comment, count=1).strip(), category=category)
    logger.debug("fact-check markers: kept index %d, demoted %d", keep, len(marked) - 1)
    return out


def apply_policy(annotations: List[Annotation], line_count: int, config: PolicyConfig = POLICY) -> List[Annotation]:
    """Run dedup, sort, cap, reaction sparsity and single fact-check, in that order."""
    result = dedupe_by_line(annotations)
    result = sort_by_priority(result)
    result = result[: max_per_persona(line_count, config)]
    result = limit_reactions(result, config)
    result = enforce_single_fact_check(result, config)
    return result


def reconcile_liked(overall_liked: bool, annotations: List[Annotation], config: PolicyConfig = POLICY) -> bool:
    """
    Correct the model's own liked flag against the final annotation mix.

    A single severe issue vetoes liked=True. Rescuing False -> True is easier:
    no severe issue and either some praise or at most one medium issue.
    """
    issues_high = issues_medium = issues_low = praises = 0
    for a in annotations:
        if a.category is Category.PRAISE:
            praises += 1
        elif a.category is Category.ISSUE:
            if a.severity is Severity.HIGH:
                issues_high += 1
            elif a.severity is Severity.MEDIUM:
                issues_medium += 1
            else:
                issues_low += 1

    if overall_liked:
        if issues_high >= config.veto_high_issues:
            return False
        if issues_medium >= config.medium_issues_veto and praises == 0:
            return False
        if issues_medium >= config.mixed_medium_issues and issues_low >= config.mixed_low_issues and praises == 0:
            return False
        return True

    if issues_high == 0 and (praises >= 1 or issues_medium <= config.rescue_max_medium_issues):
        return True
    return False


def finalize_analysis(
    persona_name: str,
    overall: Overall,
    annotations: List[Annotation],
    line_count: int,
    persona_id: Optional[str] = None,
    config: PolicyConfig = POLICY,
) -> PersonaAnalysis:
    final = apply_policy(annotations, line_count, config)
    liked = reconcile_liked(overall.liked, final, config)
    if liked != overall.liked:
        logger.info("persona %s: liked reconciled %s -> %s", persona_name, overall.liked, liked)
    return PersonaAnalysis(
        persona_name=persona_name,
        overall=Overall(comment=overall.comment, liked=liked),
        annotations=final,
        persona_id=persona_id,
    )
