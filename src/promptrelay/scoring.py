"""ScoringLedger — write-once evaluator scores and the ranking snapshot.

Layout::

    <root>/scores/score_<gameId>.json
    <root>/scores/rankings.json        {"lastUpdated": ..., "rankings": [...]}

A game is scored at most once; asking again returns the stored record.
The snapshot is rebuilt from every score file after each new score, so it
never drifts from the records it summarizes.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import jsonschema

from promptrelay.core.adapter import AdapterError
from promptrelay.core.errors import PersistenceError, ValidationError
from promptrelay.core.schemas import load_schema
from promptrelay.core.scorer import GameScorer
from promptrelay.core.validation import DEFAULT_THEME
from promptrelay.models import (
    DETAIL_CATEGORIES,
    GameArtifact,
    RankingEntry,
    ScoreRecord,
    Theme,
    utc_now,
)
from promptrelay.store.base import ArtifactIndex, read_json, write_json
from promptrelay.store.session_store import SessionStore

logger = logging.getLogger(__name__)

RANKINGS_FILE = "rankings.json"
DEFAULT_RANKING_LIMIT = 50

_GAME_ID_RE = re.compile(r"^[\w \-]+$")


class ScoringLedger:
    """Persists ScoreRecords and derives rankings from them."""

    def __init__(self, root: Path, scorer: GameScorer | None = None):
        self.root = Path(root)
        self.scores_dir = self.root / "scores"
        self.scores_dir.mkdir(parents=True, exist_ok=True)
        self.scorer = scorer
        self._schema = load_schema("score_result")

    def score_game(
        self,
        artifact: GameArtifact,
        theme: Theme | str,
        prompt_history: list[str] | None = None,
    ) -> ScoreRecord:
        """Score an artifact once. Later calls return the stored record."""
        game_id = artifact.game_id
        existing = self.get_score(game_id)
        if existing is not None:
            logger.info("Game %s already scored, returning stored record", game_id)
            return existing
        if self.scorer is None:
            raise ValueError("No scorer configured")

        if isinstance(theme, str):
            theme = Theme(title=theme)
        if prompt_history is None:
            prompt_history = list(artifact.prompt_history) or [artifact.prompt]

        payload = self.scorer.score(artifact.html, theme, list(prompt_history))
        try:
            jsonschema.validate(payload, self._schema)
        except jsonschema.ValidationError as e:
            raise AdapterError(
                "invalid_response", type(self.scorer).__name__,
                f"Schema validation: {e.message}",
            ) from e

        detail = {k: int(payload["detailScores"][k]) for k in DETAIL_CATEGORIES}
        total = sum(detail.values())
        claimed = payload.get("totalScore")
        if claimed is not None and claimed != total:
            logger.warning(
                "Evaluator total %s for %s does not match category sum %d; using the sum",
                claimed, game_id, total,
            )

        record = ScoreRecord(
            game_id=game_id,
            participant=artifact.participant,
            theme=theme.title,
            detail_scores=detail,
            total_score=total,
            comment=str(payload.get("comment", "")),
            created_at=artifact.created_at,
            scored_at=utc_now(),
            theme_requirements=tuple(theme.requirements),
            prompt_history=tuple(prompt_history),
        )
        write_json(self._score_path(game_id), record.to_record())
        logger.info("Scored %s: %d", game_id, total)
        self.rebuild_rankings()
        return record

    def get_score(self, game_id: str) -> ScoreRecord | None:
        path = self._score_path(game_id)
        if not path.exists():
            return None
        return ScoreRecord.from_record(read_json(path))

    def all_scores(self) -> list[ScoreRecord]:
        """Every readable score, in file-name order. Unreadable files are skipped."""
        scores = []
        for path in sorted(self.scores_dir.glob("score_*.json")):
            try:
                scores.append(ScoreRecord.from_record(read_json(path)))
            except (PersistenceError, AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable score file %s: %s", path, exc)
        return scores

    def compute_rankings(self) -> list[RankingEntry]:
        """Sort every score on disk by total, stable for ties. Writes nothing."""
        ordered = sorted(self.all_scores(), key=lambda s: s.total_score, reverse=True)
        return [
            RankingEntry(
                rank=i,
                game_id=s.game_id,
                participant=s.participant,
                theme=s.theme,
                total_score=s.total_score,
                created_at=s.created_at,
                scored_at=s.scored_at,
            )
            for i, s in enumerate(ordered, start=1)
        ]

    def rebuild_rankings(self) -> list[RankingEntry]:
        """Recompute the ranking and rewrite the snapshot."""
        rankings = self.compute_rankings()
        write_json(self.scores_dir / RANKINGS_FILE, {
            "lastUpdated": utc_now(),
            "rankings": [r.to_record() for r in rankings],
        })
        return rankings

    def get_rankings(self, limit: int = DEFAULT_RANKING_LIMIT) -> list[RankingEntry]:
        """Top ``limit`` entries from the snapshot, rebuilding it if missing."""
        path = self.scores_dir / RANKINGS_FILE
        try:
            data = read_json(path)
            rankings = [RankingEntry.from_record(r) for r in data["rankings"]]
        except (PersistenceError, AttributeError, KeyError, TypeError, ValueError) as exc:
            if path.exists():
                logger.warning("Rebuilding unreadable rankings snapshot: %s", exc)
            rankings = self.rebuild_rankings()
        return rankings[:limit]

    def _score_path(self, game_id: str) -> Path:
        game_id = game_id.removesuffix(".html")
        if not _GAME_ID_RE.match(game_id):
            raise ValidationError(f"Invalid game id: {game_id!r}")
        return self.scores_dir / f"score_{game_id}.json"


def resolve_game(
    index: ArtifactIndex,
    game_id: str,
    sessions: SessionStore | None = None,
) -> tuple[GameArtifact, Theme, list[str]]:
    """Look up an artifact plus the theme and prompt chain that produced it.

    Session-mode artifacts take both from their session (prompts up to and
    including the artifact's own turn). Flat-mode artifacts carry their
    history themselves and have no theme beyond the default.
    """
    artifact = index.find_artifact(game_id)
    if artifact.session_id and sessions is not None:
        session = sessions.load_session(artifact.session_id, with_artifacts=False)
        upto = artifact.game_index or len(session.prompt_history)
        history = [p.text for p in session.prompt_history if p.order <= upto]
        return artifact, session.theme, history or [artifact.prompt]
    history = list(artifact.prompt_history) or [artifact.prompt]
    return artifact, Theme(title=DEFAULT_THEME), history
