# AI INSTRUCTION:
# Define simple, typed dataclasses shared across generator modules.

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass
class Message:
    """Single chat turn: system, user, or assistant."""
    role: str
    content: str


@dataclass
class ModelParams:
    """LLM parameters per request."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class Persona:
    """Synthetic reader. Borrowed read-only for one request, never mutated."""
    name: str
    city: Optional[str] = None
    mini_description: Optional[str] = None
    biography: Optional[str] = None
    id: Optional[str] = None


# Used when the caller sends no persona at all.
DEFAULT_PERSONA = Persona(
    name="Alex Martin",
    city="Paris",
    mini_description="Neutral, curious reader",
    biography="Alex likes to learn and gives honest feedback, focusing on clarity and impact.",
    id="default",
)
