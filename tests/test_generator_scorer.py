"""Tests for prompt assembly and the model-backed generator/scorer."""

import json

import pytest

from promptrelay.core.adapter import AdapterError, MockAdapter
from promptrelay.core.generator import (
    SYSTEM_PROMPT,
    ModelGenerator,
    build_generation_prompt,
)
from promptrelay.core.scorer import ModelScorer, build_scoring_prompt
from promptrelay.models import DETAIL_CATEGORIES, Theme
from promptrelay.strategies import STRATEGY_REGISTRY

THEME = Theme(
    title="Build a game that tests your reflexes!",
    description="React to a signal as fast as you can.",
    requirements=("Works as a game", "Measures or rewards reaction speed"),
)


class _Recorder:
    """Strategy that remembers what it was sent."""

    def __init__(self, output):
        self.output = output
        self.messages = None
        self.context = None

    def __call__(self, messages, context):
        self.messages = messages
        self.context = context
        return self.output


class TestBuildGenerationPrompt:
    def test_first_prompt(self):
        text = build_generation_prompt("make a clicker", [], THEME)
        assert text.startswith(SYSTEM_PROMPT)
        assert "Theme: Build a game that tests your reflexes!" in text
        assert "Earlier refinements" not in text
        assert text.endswith("Instruction: make a clicker\n\nHTML:")

    def test_only_three_most_recent(self):
        text = build_generation_prompt("e", ["a", "b", "c", "d"], THEME)
        assert "Earlier refinements: 1.b 2.c 3.d" in text

    def test_string_theme(self):
        assert "Theme: Puzzles" in build_generation_prompt("go", [], "Puzzles")


class TestModelGenerator:
    def test_sends_one_user_message(self):
        rec = _Recorder("<!DOCTYPE html><html></html>")
        gen = ModelGenerator(MockAdapter("mock-gen", rec), max_tokens=4096)
        resp = gen.generate("add a timer", ["a", "b", "c", "make a clicker"], THEME)
        assert resp.raw_text == "<!DOCTYPE html><html></html>"
        assert len(rec.messages) == 1
        assert rec.messages[0]["role"] == "user"
        assert rec.context["previous_prompts"] == ["b", "c", "make a clicker"]
        assert rec.context["prompt"] == "add a timer"
        assert rec.context["theme"] is THEME

    def test_extra_context_passed_through(self):
        rec = _Recorder("x")
        gen = ModelGenerator(MockAdapter("mock-gen", rec))
        gen.generate("go", [], THEME, context={"participant": "Aki"})
        assert rec.context["participant"] == "Aki"


class TestBuildScoringPrompt:
    def test_includes_theme_history_and_html(self):
        text = build_scoring_prompt("<html>game</html>", THEME, ["make a clicker", "add a timer"])
        assert "Title: Build a game that tests your reflexes!" in text
        assert "Required features: Works as a game, Measures or rewards reaction speed" in text
        assert "1. make a clicker\n2. add a timer" in text
        assert "<html>game</html>" in text
        for category in DETAIL_CATEGORIES:
            assert category in text

    def test_empty_history_placeholder(self):
        assert "1. (first prompt)" in build_scoring_prompt("<html>", THEME, [])

    def test_string_theme_gets_generic_description(self):
        text = build_scoring_prompt("<html>", "Puzzles", ["go"])
        assert "Description: A web game about Puzzles" in text


class TestModelScorer:
    def test_heuristic_strategy_passes_schema(self):
        scorer = ModelScorer(MockAdapter("mock-judge", STRATEGY_REGISTRY["heuristic_score"]))
        payload = scorer.score("<html>game</html>", THEME, ["make a clicker"])
        assert set(payload["detailScores"]) == set(DETAIL_CATEGORIES)
        assert all(80 <= v < 180 for v in payload["detailScores"].values())

    def test_deterministic_for_same_html(self):
        scorer = ModelScorer(MockAdapter("mock-judge", STRATEGY_REGISTRY["heuristic_score"]))
        a = scorer.score("<html>game</html>", THEME, ["go"])
        b = scorer.score("<html>game</html>", THEME, ["go"])
        assert a == b

    def test_unparseable_output_raises(self):
        scorer = ModelScorer(MockAdapter("mock-judge", STRATEGY_REGISTRY["garbage_score"]))
        with pytest.raises(AdapterError) as exc_info:
            scorer.score("<html>", THEME, ["go"])
        assert exc_info.value.error_type == "invalid_response"
        assert exc_info.value.model_id == "mock-judge"

    def test_picks_json_out_of_prose(self):
        verdict = {
            "detailScores": {c: 100 for c in DETAIL_CATEGORIES},
            "comment": "Fine.",
        }
        rec = _Recorder("My verdict:\n" + json.dumps(verdict))
        scorer = ModelScorer(MockAdapter("mock-judge", rec))
        assert scorer.score("<html>", THEME, ["go"]) == verdict
        assert rec.context["prompt_history"] == ["go"]
