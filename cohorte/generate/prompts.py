# AI INSTRUCTION:
# Provide the prompt fragments for per-persona feedback.
# The system block carries every style and policy rule; the persona card and
# the numbered script travel as separate user turns.

from __future__ import annotations

from .types import Persona

PLACEHOLDER = "(not provided)"

LANGUAGE_RULES = """\
Write every comment in the same language as the script. Never switch language.
"""

TONE_RULES = """\
Be concise and conversational, like a real reader scribbling in the margin.
Use at most one emoji or exclamation mark per comment, and only when it fits.
Do not comment on spelling, grammar or typography. No meta-commentary about being an AI.
"""

CRITIQUE_RULES = """\
Prioritize issues and suggestions over praise: point at what should change.
Use "praise" only for lines that genuinely stand out.
"""

FACT_CHECK_RULES = """\
If a line states a claim that looks misleading or false, you may start ONE comment,
and only one, with "Fact-check:" (or "Vérification:" for a French script).
"""

REACTION_RULES = """\
Add a reaction ("like" or "dislike") to at most 20% of your annotations; leave it null otherwise.
Use "dislike" only on a high-severity issue.
"""


def build_system_prompt(max_annotations: int, comment_max_chars: int, overall_max_chars: int) -> str:
    return f"""You role-play a real person (the persona) reading a script line by line.
React as that person would, based on their tastes and background. Do not invent facts.

Language:
{LANGUAGE_RULES}
Tone:
{TONE_RULES}
Critique:
{CRITIQUE_RULES}
Fact-checking:
{FACT_CHECK_RULES}
Reactions:
{REACTION_RULES}
Output:
- Annotate at most {max_annotations} lines, referring to them by their number (L<n>).
- Each comment stays under {comment_max_chars} characters.
- category is one of praise, suggestion, issue, question; severity is one of low, medium, high.
- "overall" sums up your opinion in under {overall_max_chars} characters and says whether you liked it.
Answer with JSON only, following the provided schema.
"""


def build_persona_card(persona: Persona) -> str:
    def _field(value) -> str:
        value = (value or "").strip() if isinstance(value, str) else value
        return str(value) if value else PLACEHOLDER

    return (
        "PERSONA:\n"
        f"Name: {_field(persona.name)}\n"
        f"City: {_field(persona.city)}\n"
        f"Mini-description: {_field(persona.mini_description)}\n"
        f"Bio: {_field(persona.biography)}"
    )


def build_script_message(numbered: str) -> str:
    return f"Script to annotate (one line per L<n>):\n\n{numbered}"
