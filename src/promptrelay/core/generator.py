"""Generator — turns a participant prompt into raw model output.

The generator sees the theme, at most the three most recent earlier
prompts, and the new instruction. It does not see earlier HTML; each turn
regenerates the whole document.
"""

from abc import ABC, abstractmethod
from typing import Any

from promptrelay.core.adapter import AdapterResponse, ModelAdapter
from promptrelay.models import Theme

RECENT_PROMPT_LIMIT = 3

SYSTEM_PROMPT = """Build a simple HTML game.

Requirements:
- HTML, CSS and JavaScript only
- Everything in one file
- Responsive layout
- A simple game that is fun within 5 seconds

Output: only the complete HTML, starting with <!DOCTYPE html>. No comments or explanations."""


def build_generation_prompt(
    prompt: str,
    previous_prompts: list[str],
    theme: Theme | str | None = None,
) -> str:
    """Assemble the single user message sent to the model."""
    parts = [SYSTEM_PROMPT, ""]
    title = theme.title if isinstance(theme, Theme) else theme
    if title:
        parts.append(f"Theme: {title}")
    recent = list(previous_prompts)[-RECENT_PROMPT_LIMIT:]
    if recent:
        numbered = " ".join(f"{i}.{p}" for i, p in enumerate(recent, start=1))
        parts.append(f"Earlier refinements: {numbered}")
    parts.append(f"Instruction: {prompt}")
    parts.append("")
    parts.append("HTML:")
    return "\n".join(parts)


class GameGenerator(ABC):
    """Produces raw HTML-ish text for one prompt turn."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        previous_prompts: list[str],
        theme: Theme,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        """Return the model's raw response. Raises AdapterError on failure."""


class ModelGenerator(GameGenerator):
    """GameGenerator backed by any ModelAdapter."""

    def __init__(self, adapter: ModelAdapter, max_tokens: int = 8192, timeout_s: float = 120.0):
        self.adapter = adapter
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s

    def generate(
        self,
        prompt: str,
        previous_prompts: list[str],
        theme: Theme,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        recent = list(previous_prompts)[-RECENT_PROMPT_LIMIT:]
        messages = [{
            "role": "user",
            "content": build_generation_prompt(prompt, recent, theme),
        }]
        ctx = dict(context or {})
        ctx.update({"prompt": prompt, "previous_prompts": recent, "theme": theme})
        return self.adapter.query(
            messages,
            max_tokens=self.max_tokens,
            timeout_s=self.timeout_s,
            context=ctx,
        )
