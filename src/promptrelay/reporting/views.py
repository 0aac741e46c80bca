"""Gallery, statistics and ranking views.

Nothing here is cached: every call re-reads the store through the
ArtifactIndex interface (or the ScoringLedger), so the numbers are always
those of the files currently on disk.
"""

from __future__ import annotations

from datetime import datetime, timezone

from promptrelay.scoring import DEFAULT_RANKING_LIMIT, ScoringLedger
from promptrelay.store.base import ArtifactIndex

UNKNOWN_SESSION = "Unknown Session"
UNKNOWN_THEME = "Unknown Theme"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(created_at: str) -> datetime:
    try:
        dt = datetime.fromisoformat(created_at)
    except (TypeError, ValueError):
        return _EPOCH
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def gallery(index: ArtifactIndex) -> list[dict]:
    """Every artifact with its session's name and theme, newest first."""
    sessions = {s.id: s for s in index.list_sessions()}
    entries = []
    for artifact in index.list_artifacts():
        session = sessions.get(artifact.session_id) if artifact.session_id else None
        entry = artifact.to_summary()
        entry["sessionName"] = session.name if session else UNKNOWN_SESSION
        entry["theme"] = session.theme.title if session else UNKNOWN_THEME
        entries.append(entry)
    entries.sort(key=lambda e: _sort_key(e["createdAt"]), reverse=True)
    return entries


def stats(index: ArtifactIndex) -> dict:
    sessions = index.list_sessions()
    artifacts = index.list_artifacts()
    total_sessions = len(sessions)
    total_participants = len(index.list_participants())
    total_games = len(artifacts)
    total_size = sum(a.file_size for a in artifacts)
    return {
        "totalSessions": total_sessions,
        "totalParticipants": total_participants,
        "totalGames": total_games,
        "avgParticipantsPerSession": (
            round(total_participants / total_sessions, 1) if total_sessions else 0
        ),
        "avgGamesPerSession": round(total_games / total_sessions, 1) if total_sessions else 0,
        "totalFileSize": total_size,
        "avgFileSize": round(total_size / total_games) if total_games else 0,
    }


def score_stats(ledger: ScoringLedger) -> dict:
    totals = [s.total_score for s in ledger.all_scores()]
    if not totals:
        return {"totalGames": 0, "averageScore": 0, "highestScore": 0, "lowestScore": 0}
    return {
        "totalGames": len(totals),
        "averageScore": round(sum(totals) / len(totals)),
        "highestScore": max(totals),
        "lowestScore": min(totals),
    }


def rankings(ledger: ScoringLedger, limit: int = DEFAULT_RANKING_LIMIT) -> list[dict]:
    """Ranking recomputed from the score files, not read from the snapshot."""
    return [entry.to_record() for entry in ledger.compute_rankings()[:limit]]
