from pydantic import BaseModel
from typing import Tuple


class PolicyConfig(BaseModel):
    # normalizer caps
    comment_max_chars: int = 120
    overall_comment_max_chars: int = 140

    # requested from the model: min(max_requested_annotations, line_count)
    max_requested_annotations: int = 50

    # kept per persona: clamp(ceil(line_count / lines_per_annotation), min, max)
    lines_per_annotation: int = 12
    min_annotations: int = 3
    max_annotations: int = 8

    # reactions on at most max(1, floor(reaction_ratio * N)) annotations
    reaction_ratio: float = 0.2

    # leading "<label>:" marks a fact-check note; English and French spellings
    fact_check_labels: Tuple[str, ...] = ("fact-check", "vérification")

    # liked reconciliation thresholds (hand-tuned against sample transcripts)
    veto_high_issues: int = 1
    medium_issues_veto: int = 3
    mixed_medium_issues: int = 2
    mixed_low_issues: int = 2
    rescue_max_medium_issues: int = 1


POLICY = PolicyConfig()
