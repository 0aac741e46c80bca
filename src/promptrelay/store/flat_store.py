"""FlatGameStore — flat, one-live-artifact-per-participant persistence mode.

Layout::

    <root>/games/game_<YYYYMMDDHHMMSS>_<sanitized participant>.html   (+ .json sidecar)

Saving an artifact first deletes every earlier artifact tagged with the
same participant, so each participant has at most one file on disk.
Ownership is decided by the Participant metadata, not the file name,
because name sanitization is lossy.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from promptrelay.core.errors import NotFoundError, PersistenceError
from promptrelay.core.sanitizer import safe_file_component
from promptrelay.core.validation import validate_file_name
from promptrelay.models import GameArtifact, Participant, Session
from promptrelay.store.base import (
    ArtifactIndex,
    load_artifact_file,
    remove_artifact_files,
    scan_artifacts,
    write_json,
    write_text,
)
from promptrelay.store.metadata import FLAT_FIELDS, render_header, sidecar_path

logger = logging.getLogger(__name__)


class FlatGameStore(ArtifactIndex):
    """Single ``games/`` directory; a new artifact replaces the participant's old one."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.games_dir = self.root / "games"
        self.games_dir.mkdir(parents=True, exist_ok=True)

    def save_artifact(self, artifact: GameArtifact) -> GameArtifact:
        removed = self.delete_participant_artifacts(artifact.participant)
        if removed:
            logger.info(
                "Replaced %d earlier artifact(s) for %s", removed, artifact.participant
            )

        artifact.session_id = None
        artifact.game_index = None
        path = self._free_path(artifact.participant, _timestamp(artifact.created_at))
        artifact.file_name = path.name

        header = render_header({
            "Participant": artifact.participant,
            "Prompt": artifact.prompt,
            "PromptHistory": list(artifact.prompt_history),
            "Generated": artifact.created_at,
        })
        write_text(path, header + artifact.html)
        write_json(sidecar_path(path), {
            "participant": artifact.participant,
            "prompt": artifact.prompt,
            "promptHistory": list(artifact.prompt_history),
            "generated": artifact.created_at,
            "fileName": artifact.file_name,
        })
        artifact.file_size = path.stat().st_size
        logger.info("Saved %s", artifact.file_name)
        return artifact

    def delete_participant_artifacts(self, participant: str) -> int:
        """Remove every artifact tagged with ``participant``. Returns the count."""
        count = 0
        for artifact in self.list_artifacts():
            if artifact.participant == participant:
                remove_artifact_files(self.games_dir / artifact.file_name)
                count += 1
        return count

    def load_artifact(self, file_name: str) -> GameArtifact:
        return load_artifact_file(self._game_path(file_name), FLAT_FIELDS)

    def read_game_file(self, file_name: str) -> str:
        path = self._game_path(file_name)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(path, str(exc)) from exc

    def delete_artifact(self, file_name: str) -> None:
        remove_artifact_files(self._game_path(file_name))

    def list_artifacts(self) -> list[GameArtifact]:
        return scan_artifacts(self.games_dir, FLAT_FIELDS)

    def list_sessions(self) -> list[Session]:
        return []

    def list_participants(self) -> list[Participant]:
        seen: dict[str, Participant] = {}
        for artifact in self.list_artifacts():
            if artifact.participant not in seen:
                seen[artifact.participant] = Participant(
                    name=artifact.participant, joined_at=artifact.created_at
                )
        return list(seen.values())

    def find_artifact(self, game_id: str) -> GameArtifact:
        return self.load_artifact(f"{game_id}.html")

    def _free_path(self, participant: str, stamp: datetime) -> Path:
        """First file name not owned by another participant.

        Sanitized names can collide ("Aki Ren" and "Aki-Ren"), so the stamp
        moves forward a second at a time until the slot is free.
        """
        component = safe_file_component(participant)
        while True:
            path = self.games_dir / f"game_{stamp.strftime('%Y%m%d%H%M%S')}_{component}.html"
            if not path.exists():
                return path
            try:
                owner = load_artifact_file(path, FLAT_FIELDS).participant
            except PersistenceError:
                owner = None
            if owner == participant:
                return path
            stamp += timedelta(seconds=1)

    def _game_path(self, file_name: str) -> Path:
        if not validate_file_name(file_name).valid:
            raise NotFoundError("game file", file_name)
        path = self.games_dir / file_name
        if not path.is_file():
            raise NotFoundError("game file", file_name)
        return path


def _timestamp(created_at: str) -> datetime:
    """Parse an ISO timestamp; now if unparseable."""
    try:
        return datetime.fromisoformat(created_at)
    except (TypeError, ValueError):
        return datetime.now(timezone.utc)
