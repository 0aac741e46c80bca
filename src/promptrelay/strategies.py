"""Mock generator and evaluator strategies for offline play and tests.

Each strategy matches the MockAdapter signature:
    (messages: list[dict], context: dict) -> str

Generator strategies (context carries prompt, previous_prompts, theme):
- template_strategy: a small, complete click-counter game mentioning the prompt.
- fenced_strategy: the same document wrapped in prose and an ```html fence.
- verbose_strategy: a document padded with a long script, so a small token
  cap truncates it mid-script (exercises repair).
- garbage_strategy: prose with no markup at all.

Evaluator strategies (context carries html, theme, prompt_history):
- heuristic_score_strategy: deterministic scores derived from the HTML.
- garbage_score_strategy: returns non-JSON text.
"""

from __future__ import annotations

import hashlib
import html as _html
import json
from typing import Any

from promptrelay.models import DETAIL_CATEGORIES, Theme


def _theme_title(context: dict[str, Any]) -> str:
    theme = context.get("theme")
    if isinstance(theme, Theme):
        return theme.title
    return str(theme or "Mini-game")


def _render_game(context: dict[str, Any], extra_script: str = "") -> str:
    title = _html.escape(_theme_title(context))
    steps = [*context.get("previous_prompts", []), context.get("prompt", "")]
    notes = "".join(f"<li>{_html.escape(s)}</li>" for s in steps if s)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; text-align: center; padding: 2rem; }}
button {{ font-size: 2rem; padding: 1rem 2rem; }}
</style>
</head>
<body>
<h1>{title}</h1>
<ul>{notes}</ul>
<button id="tap">Tap!</button>
<p>Score: <span id="score">0</span></p>
<script>
let score = 0;
document.getElementById("tap").addEventListener("click", () => {{
  score += 1;
  document.getElementById("score").textContent = score;
}});
{extra_script}
</script>
</body>
</html>"""


def template_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Return a complete, bare HTML document."""
    return _render_game(context)


def fenced_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Wrap the document in chatter and a labelled code fence."""
    return (
        "Sure! Here is an updated version of your game.\n\n"
        "```html\n" + _render_game(context) + "\n```\n\n"
        "Let me know if you want more changes."
    )


def verbose_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """A document whose script is long enough to be cut by a small cap."""
    padding = "\n".join(
        f"const level{i} = {{ speed: {i}, targets: {i * 2} }};" for i in range(400)
    )
    return _render_game(context, extra_script=padding)


def garbage_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Return prose with no HTML for failure-path testing."""
    return "I'm sorry, I can't build that game right now."


def heuristic_score_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Deterministic per-category scores keyed off a hash of the HTML."""
    digest = hashlib.sha256(context.get("html", "").encode("utf-8")).digest()
    scores = {
        category: 80 + digest[i] % 100
        for i, category in enumerate(DETAIL_CATEGORIES)
    }
    prompt_count = len(context.get("prompt_history", []))
    return json.dumps({
        "detailScores": scores,
        "comment": f"Playable after {prompt_count} prompt(s). Works, but it won't keep anyone busy for long.",
    })


def garbage_score_strategy(
    messages: list[dict[str, str]], context: dict[str, Any]
) -> str:
    """Return non-JSON text for failure-path testing."""
    return "Great game, 10/10!"


STRATEGY_REGISTRY = {
    "template": template_strategy,
    "fenced": fenced_strategy,
    "verbose": verbose_strategy,
    "garbage": garbage_strategy,
    "heuristic_score": heuristic_score_strategy,
    "garbage_score": garbage_score_strategy,
}
