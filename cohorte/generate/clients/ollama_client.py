# AI INSTRUCTION:
# Define a client for Ollama local inference.
# It must accept model name and expose complete_json(messages, schema, params).

import json
import logging
import os
import requests
from typing import Any, Dict, List, Optional
from ..types import Message, ModelParams

logger = logging.getLogger(__name__)

OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")


class OllamaClient:
    def __init__(self, model: str = "mistral:7b-instruct", host: Optional[str] = None):
        self.model = model
        self.host = host or OLLAMA_HOST

    def complete_json(
        self, messages: List[Message], schema: Dict[str, Any], params: ModelParams
    ) -> Optional[Dict[str, Any]]:
        payload = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "format": schema,
            "stream": False,
            "options": {
                "temperature": float(params.temperature if params.temperature is not None else 0.7),
                "num_predict": int(params.max_tokens if params.max_tokens is not None else 2000),
            },
        }
        url = f"{self.host}/api/chat"
        resp = requests.post(url, json=payload, timeout=180)
        resp.raise_for_status()
        text = (resp.json().get("message") or {}).get("content", "").strip()
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("ollama: unparsable JSON from %s (%d chars)", self.model, len(text))
            return None
