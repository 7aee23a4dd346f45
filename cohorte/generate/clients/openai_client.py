# AI INSTRUCTION:
# Define a client for OpenAI Chat Completions API with structured outputs.
# It should follow the same interface as OllamaClient.

import json
import logging
import os
from typing import Any, Dict, List, Optional
from openai import OpenAI
from ..types import Message, ModelParams

logger = logging.getLogger(__name__)

# strict structured outputs reject string length keywords; the prompt states those limits
_UNSUPPORTED_KEYWORDS = ("maxLength", "minLength")


def strict_schema(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {k: strict_schema(v) for k, v in schema.items() if k not in _UNSUPPORTED_KEYWORDS}
    if isinstance(schema, list):
        return [strict_schema(v) for v in schema]
    return schema


class OpenAIClient:
    def __init__(self, model: str = "gpt-4o-mini", api_key: Optional[str] = None):
        self.model = model
        self.client = OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))

    def complete_json(
        self, messages: List[Message], schema: Dict[str, Any], params: ModelParams, name: str = "persona_analysis"
    ) -> Optional[Dict[str, Any]]:
        """Return the parsed JSON object, or None when the answer does not parse."""
        formatted = [{"role": m.role, "content": m.content} for m in messages]
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=formatted,
            temperature=params.temperature if params.temperature is not None else 0.7,
            max_tokens=params.max_tokens if params.max_tokens is not None else 2000,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": name, "schema": strict_schema(schema), "strict": True},
            },
        )
        text = (resp.choices[0].message.content or "").strip()
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("openai: unparsable JSON from %s (%d chars)", self.model, len(text))
            return None
