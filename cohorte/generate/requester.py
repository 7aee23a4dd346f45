# AI INSTRUCTION:
# Provide a FeedbackRequester class that:
# - accepts any model client (Ollama, OpenAI, Echo)
# - builds prompts from style rules + persona card + numbered script
# - requests JSON validated against the persona_analysis schema
# - returns a finalized PersonaAnalysis and NEVER raises:
#   an unusable answer becomes an empty stub for that persona only

from __future__ import annotations
import logging
import os
from typing import List, Optional

import yaml

from cohorte.annotate import POLICY, PersonaAnalysis, PolicyConfig, finalize_analysis, normalize_payload
from cohorte.index import IndexedLine, line_count, numbered_text
from .prompts import build_persona_card, build_script_message, build_system_prompt
from .schema import build_response_schema, validate_payload
from .types import Message, ModelParams, Persona

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class FeedbackRequester:
    def __init__(self, model_client, config_path: str = DEFAULT_CONFIG_PATH, policy: PolicyConfig = POLICY):
        self.model_client = model_client
        self.config_path = config_path
        self.policy = policy
        self.cfg = self._load_config()

    def _load_config(self):
        if not os.path.exists(self.config_path):
            return {}
        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def requested_cap(self, n_lines: int) -> int:
        return min(self.policy.max_requested_annotations, n_lines)

    def build_messages(self, persona: Persona, lines: List[IndexedLine]) -> List[Message]:
        """System rules, then persona card, then the numbered script."""
        sys_msg = build_system_prompt(
            max_annotations=self.requested_cap(line_count(lines)),
            comment_max_chars=self.policy.comment_max_chars,
            overall_max_chars=self.policy.overall_comment_max_chars,
        )
        return [
            Message(role="system", content=sys_msg),
            Message(role="user", content=build_persona_card(persona)),
            Message(role="user", content=build_script_message(numbered_text(lines))),
        ]

    def build_schema(self, n_lines: int) -> dict:
        return build_response_schema(
            max_annotations=self.requested_cap(n_lines),
            comment_max_chars=self.policy.comment_max_chars,
            overall_max_chars=self.policy.overall_comment_max_chars,
        )

    def request_feedback(
        self,
        persona: Persona,
        lines: List[IndexedLine],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> PersonaAnalysis:
        """One model round-trip for one persona. Failures yield an empty stub."""
        n_lines = line_count(lines)
        messages = self.build_messages(persona, lines)
        params = ModelParams(
            temperature=temperature if temperature is not None else self.cfg.get("temperature", 0.7),
            max_tokens=max_tokens if max_tokens is not None else self.cfg.get("max_tokens", 2000),
        )

        try:
            data = self.model_client.complete_json(messages, self.build_schema(n_lines), params)
        except Exception as e:
            logger.warning("persona %s: model call failed: %s", persona.name, e)
            return PersonaAnalysis.empty(persona.name, persona.id)

        payload = validate_payload(data)
        if payload is None:
            logger.warning("persona %s: response failed structural validation", persona.name)
            return PersonaAnalysis.empty(persona.name, persona.id)

        overall, annotations = normalize_payload(payload, n_lines, self.policy)
        analysis = finalize_analysis(
            persona_name=persona.name,
            overall=overall,
            annotations=annotations,
            line_count=n_lines,
            persona_id=persona.id,
            config=self.policy,
        )
        logger.info(
            "persona %s: %d raw -> %d final annotations, liked=%s",
            persona.name, len(annotations), len(analysis.annotations), analysis.overall.liked,
        )
        return analysis
