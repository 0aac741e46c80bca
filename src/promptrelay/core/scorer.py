"""Scorer — asks an evaluator model to grade one finished game.

Five categories, 0-200 each, 1000 total. The evaluator answers in JSON;
ScoreParser pulls out the last object that matches ``score_result.json``.
"""

from abc import ABC, abstractmethod
from typing import Any

from promptrelay.core.adapter import AdapterError, ModelAdapter
from promptrelay.core.parser import ScoreParser
from promptrelay.core.schemas import load_schema
from promptrelay.models import Theme

_DEFAULT_REQUIREMENTS = (
    "Works as a game",
    "Clear on-screen UI",
    "Responds to player input",
)


def build_scoring_prompt(html: str, theme: Theme | str | None, prompt_history: list[str]) -> str:
    if isinstance(theme, Theme):
        title, description = theme.title, theme.description
        requirements = theme.requirements or _DEFAULT_REQUIREMENTS
    else:
        title = theme or "Mini-game"
        description = f"A web game about {title}" if theme else "A mini-game playable in 5 seconds"
        requirements = _DEFAULT_REQUIREMENTS

    if prompt_history:
        history = "\n".join(f"{i}. {p}" for i, p in enumerate(prompt_history, start=1))
    else:
        history = "1. (first prompt)"

    return f"""You judge prompt-writing. Grade the game-building challenge below on how well the prompts got the model to meet the brief.

[Challenge]
Title: {title}
Description: {description}
Required features: {", ".join(requirements)}

[Participant prompt history]
{history}

[Game generated by the model]
{html}

[Categories] (1000 points total)
1. requiredFeatures (0-200): did the prompts convey the brief accurately
2. completeness (0-200): does it stand as a finished game
3. uiUx (0-200): look and feel, ease of use
4. playability (0-200): is it actually fun to play
5. creativity (0-200): original ideas or twists

[Calibration]
- Strict: average 400-550, excellent 650-750
- Use fine-grained, distinct values per category
- Short prompts that meet the brief score high; long prompts with poor results score low

Answer with JSON only:
{{
  "detailScores": {{
    "requiredFeatures": <0-200>,
    "completeness": <0-200>,
    "uiUx": <0-200>,
    "playability": <0-200>,
    "creativity": <0-200>
  }},
  "comment": "<2-3 casual, slightly blunt sentences on the game and how the prompts shaped it>"
}}"""


class GameScorer(ABC):
    """Grades a generated game."""

    @abstractmethod
    def score(self, html: str, theme: Theme, prompt_history: list[str]) -> dict[str, Any]:
        """Return ``{"detailScores": {...}, "comment": str[, "totalScore": int]}``.

        Raises AdapterError on failure or unusable output.
        """


class ModelScorer(GameScorer):
    """GameScorer backed by any ModelAdapter."""

    def __init__(self, adapter: ModelAdapter, max_tokens: int = 1024, timeout_s: float = 60.0):
        self.adapter = adapter
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self._parser = ScoreParser()
        self._schema = load_schema("score_result")

    def score(self, html: str, theme: Theme, prompt_history: list[str]) -> dict[str, Any]:
        messages = [{
            "role": "user",
            "content": build_scoring_prompt(html, theme, prompt_history),
        }]
        response = self.adapter.query(
            messages,
            max_tokens=self.max_tokens,
            timeout_s=self.timeout_s,
            context={"html": html, "theme": theme, "prompt_history": list(prompt_history)},
        )
        result = self._parser.parse(response.raw_text, self._schema)
        if not result.success:
            raise AdapterError("invalid_response", self.adapter.model_id, result.error or "")
        return result.payload
