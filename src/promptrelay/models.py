"""Data model for sessions, participants, prompts, artifacts and scores.

On disk every record is camelCase JSON; ``to_record``/``from_record`` are the
only places that know the key names. Readers are lenient: a missing key
falls back to a default so old or hand-edited files still load.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

UNKNOWN = "Unknown"

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_session_id(now: datetime | None = None) -> str:
    """``session_<YYYYMMDDHHMMSS>_<9 lowercase alnum>``."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"session_{now.strftime('%Y%m%d%H%M%S')}_{suffix}"


class SessionState(Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    STOPPED = "stopped"
    FINISHED = "finished"


class StoreMode(Enum):
    SESSION = "session"
    FLAT = "flat"


@dataclass(frozen=True)
class Theme:
    title: str
    description: str = ""
    requirements: tuple[str, ...] = ()

    def to_record(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "requirements": list(self.requirements),
        }

    @classmethod
    def from_record(cls, record) -> Theme:
        # Older session.json files stored the theme as a bare string
        if isinstance(record, str):
            return cls(title=record)
        if not isinstance(record, dict):
            return cls(title=UNKNOWN)
        return cls(
            title=record.get("title", UNKNOWN),
            description=record.get("description", ""),
            requirements=tuple(record.get("requirements", ())),
        )


@dataclass(frozen=True)
class Participant:
    name: str
    joined_at: str = field(default_factory=utc_now)
    session_id: str | None = None

    def to_record(self) -> dict:
        return {
            "name": self.name,
            "joinedAt": self.joined_at,
            "sessionId": self.session_id,
        }

    @classmethod
    def from_record(cls, record: dict) -> Participant:
        return cls(
            name=record.get("name", UNKNOWN),
            joined_at=record.get("joinedAt", ""),
            session_id=record.get("sessionId"),
        )


@dataclass(frozen=True)
class PromptRecord:
    participant: str
    text: str
    order: int
    timestamp: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        return {
            "participant": self.participant,
            "prompt": self.text,
            "order": self.order,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, record: dict) -> PromptRecord:
        return cls(
            participant=record.get("participant", UNKNOWN),
            text=record.get("prompt", UNKNOWN),
            order=int(record.get("order", 0)),
            timestamp=record.get("timestamp", ""),
        )


@dataclass
class GameArtifact:
    """One generated HTML document tied to one prompt submission."""

    participant: str
    prompt: str
    html: str
    created_at: str = field(default_factory=utc_now)
    session_id: str | None = None
    game_index: int | None = None
    prompt_history: list[str] = field(default_factory=list)
    file_name: str | None = None
    file_size: int = 0

    @property
    def stem(self) -> str:
        return (self.file_name or "").removesuffix(".html")

    @property
    def game_id(self) -> str:
        """Global identity: ``<sessionId>__<stem>`` or the flat-mode stem."""
        if self.session_id:
            return f"{self.session_id}__{self.stem}"
        return self.stem

    def to_summary(self) -> dict:
        return {
            "gameId": self.game_id,
            "sessionId": self.session_id,
            "fileName": self.file_name,
            "participant": self.participant,
            "prompt": self.prompt,
            "gameIndex": self.game_index,
            "createdAt": self.created_at,
            "fileSize": self.file_size,
        }


@dataclass
class Session:
    id: str
    name: str
    theme: Theme
    created_at: str = field(default_factory=utc_now)
    state: SessionState = SessionState.WAITING
    last_updated: str | None = None
    mode: StoreMode = StoreMode.SESSION
    prompt_history: list[PromptRecord] = field(default_factory=list)
    participants: list[Participant] = field(default_factory=list)
    artifacts: list[GameArtifact] = field(default_factory=list)

    def to_record(self) -> dict:
        """session.json payload. Participants and artifacts live in their own files."""
        return {
            "id": self.id,
            "name": self.name,
            "theme": self.theme.to_record(),
            "createdAt": self.created_at,
            "gameState": self.state.value,
            "lastUpdated": self.last_updated,
            "mode": self.mode.value,
            "promptHistory": [p.to_record() for p in self.prompt_history],
        }

    @classmethod
    def from_record(cls, record: dict) -> Session:
        try:
            state = SessionState(record.get("gameState", "waiting"))
        except ValueError:
            state = SessionState.WAITING
        try:
            mode = StoreMode(record.get("mode", "session"))
        except ValueError:
            mode = StoreMode.SESSION
        return cls(
            id=record.get("id", UNKNOWN),
            name=record.get("name", UNKNOWN),
            theme=Theme.from_record(record.get("theme")),
            created_at=record.get("createdAt", ""),
            state=state,
            last_updated=record.get("lastUpdated"),
            mode=mode,
            prompt_history=[
                PromptRecord.from_record(p) for p in record.get("promptHistory", [])
            ],
        )


DETAIL_CATEGORIES = (
    "requiredFeatures",
    "completeness",
    "uiUx",
    "playability",
    "creativity",
)


@dataclass(frozen=True)
class ScoreRecord:
    game_id: str
    participant: str
    theme: str
    detail_scores: dict[str, int]
    total_score: int
    comment: str
    created_at: str
    scored_at: str
    theme_requirements: tuple[str, ...] = ()
    prompt_history: tuple[str, ...] = ()

    @property
    def prompt_count(self) -> int:
        return len(self.prompt_history)

    def to_record(self) -> dict:
        return {
            "gameId": self.game_id,
            "participant": self.participant,
            "theme": self.theme,
            "themeRequirements": list(self.theme_requirements),
            "promptHistory": list(self.prompt_history),
            "promptCount": self.prompt_count,
            "totalScore": self.total_score,
            "detailScores": dict(self.detail_scores),
            "comment": self.comment,
            "createdAt": self.created_at,
            "scoredAt": self.scored_at,
        }

    @classmethod
    def from_record(cls, record: dict) -> ScoreRecord:
        return cls(
            game_id=record["gameId"],
            participant=record.get("participant", UNKNOWN),
            theme=record.get("theme", UNKNOWN),
            detail_scores=dict(record.get("detailScores", {})),
            total_score=int(record.get("totalScore", 0)),
            comment=record.get("comment", ""),
            created_at=record.get("createdAt", ""),
            scored_at=record.get("scoredAt", ""),
            theme_requirements=tuple(record.get("themeRequirements", ())),
            prompt_history=tuple(record.get("promptHistory", ())),
        )


@dataclass(frozen=True)
class RankingEntry:
    rank: int
    game_id: str
    participant: str
    theme: str
    total_score: int
    created_at: str
    scored_at: str

    def to_record(self) -> dict:
        return {
            "rank": self.rank,
            "gameId": self.game_id,
            "participant": self.participant,
            "theme": self.theme,
            "totalScore": self.total_score,
            "createdAt": self.created_at,
            "scoredAt": self.scored_at,
        }

    @classmethod
    def from_record(cls, record: dict) -> RankingEntry:
        return cls(
            rank=int(record["rank"]),
            game_id=record["gameId"],
            participant=record.get("participant", UNKNOWN),
            theme=record.get("theme", UNKNOWN),
            total_score=int(record.get("totalScore", 0)),
            created_at=record.get("createdAt", ""),
            scored_at=record.get("scoredAt", ""),
        )
