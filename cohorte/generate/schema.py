# AI INSTRUCTION:
# Response schema sent to the model, plus the loose structural check applied
# to whatever comes back. Field-level repair is NOT done here: values that
# are the right shape but wrong content are left to annotate/normalize.py.

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

SCHEMA_NAME = "persona_analysis"


def build_response_schema(max_annotations: int, comment_max_chars: int, overall_max_chars: int) -> Dict[str, Any]:
    """JSON schema for one persona's analysis. reaction is nullable, not optional."""
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "persona_name": {"type": "string"},
            "overall": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "comment": {"type": "string", "maxLength": overall_max_chars},
                    "liked": {"type": "boolean"},
                },
                "required": ["comment", "liked"],
            },
            "annotations": {
                "type": "array",
                "maxItems": max_annotations,
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "line": {"type": "integer", "minimum": 1},
                        "comment": {"type": "string", "maxLength": comment_max_chars},
                        "category": {"type": "string", "enum": ["praise", "suggestion", "issue", "question"]},
                        "severity": {"type": "string", "enum": ["low", "medium", "high"]},
                        "reaction": {"type": ["string", "null"], "enum": ["like", "dislike", None]},
                    },
                    "required": ["line", "comment", "category", "severity", "reaction"],
                },
            },
        },
        "required": ["persona_name", "overall", "annotations"],
    }


class RawPersonaPayload(BaseModel):
    """Structural envelope only: an object whose annotations are a list of objects."""
    model_config = ConfigDict(extra="ignore")

    persona_name: Any = None
    overall: Optional[Dict[str, Any]] = None
    annotations: List[Dict[str, Any]] = []


def validate_payload(data: Any) -> Optional[RawPersonaPayload]:
    """Return the parsed envelope, or None when the structure is unusable."""
    if not isinstance(data, dict):
        return None
    try:
        return RawPersonaPayload.model_validate(data)
    except ValidationError:
        return None
