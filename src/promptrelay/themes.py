"""Theme catalog — the challenges a session can draw at start."""

from __future__ import annotations

import random

from promptrelay.core.errors import ValidationError
from promptrelay.core.validation import validate_theme
from promptrelay.models import Theme

_BASE_REQUIREMENTS = (
    "Works as a game",
    "Clear on-screen UI",
    "Responds to player input",
)

CATALOG: tuple[Theme, ...] = (
    Theme(
        title="Build a mini-game you can play in 5 seconds!",
        description="A complete game whose whole round fits in about five seconds.",
        requirements=_BASE_REQUIREMENTS + ("A round finishes in roughly 5 seconds",),
    ),
    Theme(
        title="Build the simplest possible puzzle game!",
        description="A puzzle with as few rules as possible that is still a puzzle.",
        requirements=_BASE_REQUIREMENTS + ("Has a solvable puzzle", "Detects when it is solved"),
    ),
    Theme(
        title="Build a game that tests your reflexes!",
        description="React to a signal as fast as you can.",
        requirements=_BASE_REQUIREMENTS + ("Measures or rewards reaction speed",),
    ),
    Theme(
        title="Build a game won by pure luck!",
        description="No skill involved; chance decides the winner.",
        requirements=_BASE_REQUIREMENTS + ("Outcome is random",),
    ),
    Theme(
        title="Build a rhythm game that uses sound!",
        description="Play along with audio cues.",
        requirements=_BASE_REQUIREMENTS + ("Produces sound", "Input is timed to a beat"),
    ),
    Theme(
        title="Build a memory game that uses colors!",
        description="Remember and repeat a sequence or layout of colors.",
        requirements=_BASE_REQUIREMENTS + ("Shows colors to memorize", "Checks the player's recall"),
    ),
    Theme(
        title="Build an arithmetic game with numbers!",
        description="Solve quick calculations to score.",
        requirements=_BASE_REQUIREMENTS + ("Asks arithmetic questions", "Checks answers"),
    ),
)


def load_themes(raw: list | None) -> tuple[Theme, ...]:
    """Build a catalog from config entries; the built-in one when absent.

    Entries are either bare titles or ``{title, description, requirements}``
    mappings. Titles go through theme validation.
    """
    if not raw:
        return CATALOG
    themes = []
    for entry in raw:
        theme = Theme.from_record(entry)
        check = validate_theme(theme.title)
        if not check.valid:
            raise ValidationError(check.message)
        themes.append(Theme(
            title=check.sanitized,
            description=theme.description,
            requirements=theme.requirements or _BASE_REQUIREMENTS,
        ))
    return tuple(themes)


def pick_theme(catalog: tuple[Theme, ...], rng: random.Random | None = None) -> Theme:
    """Uniform pick from the catalog."""
    return (rng or random).choice(catalog)
