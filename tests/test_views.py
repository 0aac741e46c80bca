"""Tests for the gallery, statistics and ranking views."""

import json

import pytest

from promptrelay.core.adapter import MockAdapter
from promptrelay.core.scorer import ModelScorer
from promptrelay.models import DETAIL_CATEGORIES, GameArtifact, ScoreRecord
from promptrelay.reporting import gallery, rankings, score_stats, stats
from promptrelay.reporting.views import UNKNOWN_SESSION, UNKNOWN_THEME
from promptrelay.scoring import ScoringLedger
from promptrelay.session import SessionEngine
from promptrelay.store import FlatGameStore, SessionStore
from promptrelay.strategies import STRATEGY_REGISTRY


def _play(engine, names, prompts):
    ctx = engine.create_session(list(names), name="Friday")
    engine.start(ctx.session_id)
    for prompt in prompts:
        engine.submit_prompt(ctx.session_id, prompt)
    return ctx


class TestGallery:
    def test_entries_carry_session_name_and_theme(self, game_config):
        engine = SessionEngine(game_config)
        ctx = _play(engine, ["Aki", "Ren"], ["make a clicker", "add a timer"])
        entries = gallery(SessionStore(game_config.data_dir))
        assert len(entries) == 2
        assert {e["sessionName"] for e in entries} == {"Friday"}
        assert {e["theme"] for e in entries} == {ctx.session.theme.title}
        assert entries[0]["gameId"].startswith(ctx.session_id + "__")

    def test_newest_first(self, tmp_path):
        store = FlatGameStore(tmp_path)
        for name, stamp in (("Aki", "2025-01-01T12:00:00+00:00"), ("Ren", "2025-01-02T12:00:00+00:00")):
            store.save_artifact(GameArtifact(
                participant=name, prompt="p", html="<html></html>", created_at=stamp,
            ))
        entries = gallery(store)
        assert [e["participant"] for e in entries] == ["Ren", "Aki"]
        assert entries[0]["sessionName"] == UNKNOWN_SESSION
        assert entries[0]["theme"] == UNKNOWN_THEME

    def test_empty(self, tmp_path):
        assert gallery(SessionStore(tmp_path)) == []


class TestStats:
    def test_session_mode_counts(self, game_config):
        engine = SessionEngine(game_config)
        _play(engine, ["Aki", "Ren"], ["a", "b", "c"])
        _play(engine, ["Yui"], ["d"])
        result = stats(SessionStore(game_config.data_dir))
        assert result["totalSessions"] == 2
        assert result["totalParticipants"] == 3
        assert result["totalGames"] == 4
        assert result["avgParticipantsPerSession"] == 1.5
        assert result["avgGamesPerSession"] == 2.0
        assert result["totalFileSize"] > 0
        assert result["avgFileSize"] == round(result["totalFileSize"] / 4)

    def test_empty_store_zeroes(self, tmp_path):
        assert stats(SessionStore(tmp_path)) == {
            "totalSessions": 0,
            "totalParticipants": 0,
            "totalGames": 0,
            "avgParticipantsPerSession": 0,
            "avgGamesPerSession": 0,
            "totalFileSize": 0,
            "avgFileSize": 0,
        }

    def test_flat_mode_counts_participants(self, flat_config):
        engine = SessionEngine(flat_config)
        _play(engine, ["Aki", "Ren"], ["a", "b", "c"])
        result = stats(FlatGameStore(flat_config.data_dir))
        assert result["totalSessions"] == 0
        assert result["totalParticipants"] == 2
        assert result["totalGames"] == 2


class TestScoreViews:
    @pytest.fixture
    def ledger(self, tmp_path):
        scorer = ModelScorer(MockAdapter("mock-judge", STRATEGY_REGISTRY["heuristic_score"]))
        return ScoringLedger(tmp_path, scorer)

    def test_score_stats_empty(self, ledger):
        assert score_stats(ledger) == {
            "totalGames": 0, "averageScore": 0, "highestScore": 0, "lowestScore": 0,
        }

    def test_score_stats_and_rankings(self, ledger):
        totals = []
        for name in ("Aki", "Ren"):
            artifact = GameArtifact(
                participant=name,
                prompt="p",
                html=f"<html>{name}</html>",
                file_name=f"game_20250101120000_{name}.html",
            )
            totals.append(ledger.score_game(artifact, "T").total_score)

        result = score_stats(ledger)
        assert result["totalGames"] == 2
        assert result["highestScore"] == max(totals)
        assert result["lowestScore"] == min(totals)
        assert result["averageScore"] == round(sum(totals) / 2)

        ranked = rankings(ledger)
        assert [r["rank"] for r in ranked] == [1, 2]
        assert ranked[0]["totalScore"] == max(totals)
        assert set(ranked[0]) >= {"gameId", "participant", "theme", "totalScore", "scoredAt"}
        assert all(400 <= t < 900 for t in totals)

    def test_rankings_include_scores_missing_from_snapshot(self, ledger):
        ledger.score_game(GameArtifact(
            participant="Aki",
            prompt="p",
            html="<html>Aki</html>",
            file_name="game_20250101120000_Aki.html",
        ), "T")
        copied = ScoreRecord(
            game_id="game_20250102120000_Ren",
            participant="Ren",
            theme="T",
            detail_scores={c: 200 for c in DETAIL_CATEGORIES},
            total_score=1000,
            comment="Imported.",
            created_at="2025-01-02T12:00:00+00:00",
            scored_at="2025-01-02T12:05:00+00:00",
        )
        (ledger.scores_dir / "score_game_20250102120000_Ren.json").write_text(
            json.dumps(copied.to_record())
        )

        assert len(ledger.get_rankings()) == 1
        ranked = rankings(ledger)
        assert [r["participant"] for r in ranked] == ["Ren", "Aki"]
        assert ranked[0]["totalScore"] == 1000
