"""SessionStore — session-scoped persistence mode.

Layout::

    <root>/sessions/<sessionId>/session.json
    <root>/sessions/<sessionId>/participants.json
    <root>/sessions/<sessionId>/game_<NNN>_<participant>.html   (+ .json sidecar)

There is no index file. Every read lists directories and parses what it
finds, so state survives crashes and hand edits. Writes are whole-file
replaces with no locking: two writers to the same session.json race and
the last one wins.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from promptrelay.core.errors import NotFoundError, PersistenceError
from promptrelay.core.validation import validate_file_name, validate_session_id
from promptrelay.models import GameArtifact, Participant, Session, utc_now
from promptrelay.store.base import (
    ArtifactIndex,
    load_artifact_file,
    read_json,
    remove_artifact_files,
    scan_artifacts,
    write_json,
    write_text,
)
from promptrelay.store.metadata import SESSION_FIELDS, render_header, sidecar_path

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"
PARTICIPANTS_FILE = "participants.json"


class SessionStore(ArtifactIndex):
    """One directory per session, one HTML file per prompt turn."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.sessions_dir = self.root / "sessions"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session_dir(self, session_id: str) -> Path:
        check = validate_session_id(session_id)
        if not check.valid:
            raise NotFoundError("session", session_id)
        return self.sessions_dir / session_id

    def create_session(self, session: Session) -> Session:
        """Write session.json and participants.json for a new session."""
        d = self.session_dir(session.id)
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(d, str(exc)) from exc
        write_json(d / SESSION_FILE, session.to_record())
        write_json(
            d / PARTICIPANTS_FILE,
            [p.to_record() for p in session.participants],
        )
        logger.info("Created session %s (%s)", session.id, session.name)
        return session

    def save_session(self, session: Session) -> Session:
        """Overwrite session.json; the session must already exist."""
        path = self.session_dir(session.id) / SESSION_FILE
        if not path.exists():
            raise NotFoundError("session", session.id)
        session.last_updated = utc_now()
        write_json(path, session.to_record())
        return session

    def save_participants(self, session_id: str, participants: list[Participant]) -> None:
        d = self.session_dir(session_id)
        if not (d / SESSION_FILE).exists():
            raise NotFoundError("session", session_id)
        write_json(d / PARTICIPANTS_FILE, [p.to_record() for p in participants])

    def load_session(self, session_id: str, with_artifacts: bool = True) -> Session:
        """Reconstruct a session from its directory."""
        d = self.session_dir(session_id)
        path = d / SESSION_FILE
        if not path.exists():
            raise NotFoundError("session", session_id)
        session = Session.from_record(read_json(path))
        session.participants = self._read_participants(d)
        if with_artifacts:
            session.artifacts = scan_artifacts(d, SESSION_FIELDS, session_id=session_id)
        return session

    def list_sessions(self) -> list[Session]:
        sessions = []
        for d in self._session_dirs():
            try:
                sessions.append(self.load_session(d.name, with_artifacts=False))
            except (NotFoundError, PersistenceError) as exc:
                logger.warning("Skipping session directory %s: %s", d, exc)
        return sessions

    def delete_session(self, session_id: str) -> None:
        d = self.session_dir(session_id)
        if not d.is_dir():
            raise NotFoundError("session", session_id)
        try:
            shutil.rmtree(d)
        except OSError as exc:
            raise PersistenceError(d, str(exc)) from exc
        logger.info("Deleted session %s", session_id)

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def save_artifact(self, artifact: GameArtifact) -> GameArtifact:
        """Write ``game_<NNN>_<participant>.html`` plus its sidecar."""
        if not artifact.session_id:
            raise ValueError("session-scoped artifacts need a session_id")
        d = self.session_dir(artifact.session_id)
        if not (d / SESSION_FILE).exists():
            raise NotFoundError("session", artifact.session_id)

        index = artifact.game_index or 1
        artifact.game_index = index
        artifact.file_name = f"game_{index:03d}_{artifact.participant}.html"
        path = d / artifact.file_name

        header = render_header({
            "Session ID": artifact.session_id,
            "Participant": artifact.participant,
            "Prompt": artifact.prompt,
            "Game Index": index,
            "Generated": artifact.created_at,
        })
        write_text(path, header + artifact.html)
        write_json(sidecar_path(path), {
            "sessionId": artifact.session_id,
            "participant": artifact.participant,
            "prompt": artifact.prompt,
            "gameIndex": index,
            "generated": artifact.created_at,
            "fileName": artifact.file_name,
        })
        artifact.file_size = path.stat().st_size
        logger.info("Saved %s in session %s", artifact.file_name, artifact.session_id)
        return artifact

    def load_artifact(self, session_id: str, file_name: str) -> GameArtifact:
        path = self._game_path(session_id, file_name)
        return load_artifact_file(path, SESSION_FIELDS, session_id=session_id)

    def read_game_file(self, session_id: str, file_name: str) -> str:
        """Raw file content, header included."""
        path = self._game_path(session_id, file_name)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(path, str(exc)) from exc

    def delete_artifact(self, session_id: str, file_name: str) -> None:
        remove_artifact_files(self._game_path(session_id, file_name))

    def list_session_artifacts(self, session_id: str) -> list[GameArtifact]:
        d = self.session_dir(session_id)
        if not (d / SESSION_FILE).exists():
            raise NotFoundError("session", session_id)
        return scan_artifacts(d, SESSION_FIELDS, session_id=session_id)

    def list_artifacts(self) -> list[GameArtifact]:
        artifacts = []
        for d in self._session_dirs():
            artifacts.extend(scan_artifacts(d, SESSION_FIELDS, session_id=d.name))
        return artifacts

    def find_artifact(self, game_id: str) -> GameArtifact:
        session_id, sep, stem = game_id.partition("__")
        if not sep:
            raise NotFoundError("game file", game_id)
        return self.load_artifact(session_id, f"{stem}.html")

    def next_game_index(self, session_id: str) -> int:
        """One past the highest index on disk."""
        existing = self.list_session_artifacts(session_id)
        return max((a.game_index or 0 for a in existing), default=0) + 1

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def list_participants(self) -> list[Participant]:
        participants = []
        for d in self._session_dirs():
            participants.extend(self._read_participants(d))
        return participants

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _session_dirs(self) -> list[Path]:
        if not self.sessions_dir.is_dir():
            return []
        return sorted(
            d for d in self.sessions_dir.iterdir()
            if d.is_dir() and (d / SESSION_FILE).exists()
        )

    def _read_participants(self, d: Path) -> list[Participant]:
        path = d / PARTICIPANTS_FILE
        if not path.exists():
            return []
        try:
            raw = read_json(path)
        except PersistenceError as exc:
            logger.warning("Unreadable participants file %s: %s", path, exc)
            return []
        if not isinstance(raw, list):
            return []
        out = []
        for item in raw:
            if isinstance(item, dict):
                p = Participant.from_record(item)
                if p.session_id is None:
                    p = Participant(name=p.name, joined_at=p.joined_at, session_id=d.name)
                out.append(p)
        return out

    def _game_path(self, session_id: str, file_name: str) -> Path:
        d = self.session_dir(session_id)
        if not (d / SESSION_FILE).exists():
            raise NotFoundError("session", session_id)
        if not validate_file_name(file_name).valid:
            raise NotFoundError("game file", file_name)
        path = d / file_name
        if not path.is_file():
            raise NotFoundError("game file", file_name)
        return path
