# AI INSTRUCTION:
# Provide a dummy model client for local dev and testing without API calls.
# Deterministic: one question on line 1, overall comment naming the persona.

from typing import Any, Dict, List, Optional
from ..types import Message, ModelParams


class EchoDevClient:
    def __init__(self):
        self.model = "echo-dev"

    def complete_json(
        self, messages: List[Message], schema: Dict[str, Any], params: ModelParams
    ) -> Optional[Dict[str, Any]]:
        user_inputs = [m.content for m in messages if m.role == "user"]
        card = user_inputs[0] if user_inputs else ""
        name = "echo"
        for row in card.splitlines():
            if row.startswith("Name:"):
                name = row[len("Name:"):].strip()
        return {
            "persona_name": name,
            "overall": {"comment": f"[ECHO] {name} read the script.", "liked": True},
            "annotations": [
                {
                    "line": 1,
                    "comment": "[ECHO] What happens next?",
                    "category": "question",
                    "severity": "low",
                    "reaction": None,
                }
            ],
        }
