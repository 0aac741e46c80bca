"""Tests for ScoreParser — JSON extraction and schema validation."""

import json

import pytest

from promptrelay.core.parser import ScoreParser
from promptrelay.core.schemas import load_schema


@pytest.fixture
def schema():
    return load_schema("score_result")


@pytest.fixture
def parser():
    return ScoreParser()


def _verdict(**overrides) -> dict:
    scores = {
        "requiredFeatures": 150,
        "completeness": 120,
        "uiUx": 110,
        "playability": 130,
        "creativity": 90,
    }
    scores.update(overrides)
    return {"detailScores": scores, "comment": "Solid clicker."}


class TestScoreParser:
    def test_clean_json(self, parser, schema):
        result = parser.parse(json.dumps(_verdict()), schema)
        assert result.success is True
        assert result.payload["detailScores"]["uiUx"] == 110

    def test_json_embedded_in_prose(self, parser, schema):
        raw = "Here is my evaluation:\n" + json.dumps(_verdict()) + "\nThanks!"
        assert parser.parse(raw, schema).success is True

    def test_last_valid_wins(self, parser, schema):
        raw = json.dumps(_verdict(creativity=10)) + " Actually: " + json.dumps(_verdict(creativity=99))
        result = parser.parse(raw, schema)
        assert result.payload["detailScores"]["creativity"] == 99

    def test_invalid_later_candidate_ignored(self, parser, schema):
        raw = json.dumps(_verdict()) + json.dumps(_verdict(uiUx=500))
        result = parser.parse(raw, schema)
        assert result.success is True
        assert result.payload["detailScores"]["uiUx"] == 110

    def test_out_of_range_rejected(self, parser, schema):
        result = parser.parse(json.dumps(_verdict(playability=201)), schema)
        assert result.success is False
        assert result.error.startswith("Schema validation")

    def test_missing_category_rejected(self, parser, schema):
        verdict = _verdict()
        del verdict["detailScores"]["creativity"]
        assert parser.parse(json.dumps(verdict), schema).success is False

    def test_extra_category_rejected(self, parser, schema):
        assert parser.parse(json.dumps(_verdict(humor=50)), schema).success is False

    def test_optional_total(self, parser, schema):
        verdict = _verdict()
        verdict["totalScore"] = 600
        assert parser.parse(json.dumps(verdict), schema).success is True

    def test_no_json(self, parser, schema):
        result = parser.parse("Great game, 10/10!", schema)
        assert result.success is False
        assert result.raw_json is None

    def test_empty_string(self, parser, schema):
        assert parser.parse("", schema).success is False
