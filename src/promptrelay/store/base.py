"""ArtifactIndex — the narrow read interface the views depend on.

Both persistence modes implement it by scanning directories on every call.
Anything that wants to add a real index later only has to implement these
three methods.

Also holds the file helpers shared by the stores: whole-file JSON writes
(tmp + rename) and artifact reconstruction from an HTML file.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from promptrelay.core.errors import PersistenceError
from promptrelay.models import UNKNOWN, GameArtifact, Participant, Session
from promptrelay.store.metadata import read_metadata, sidecar_path, split_header

logger = logging.getLogger(__name__)

_GAME_INDEX_RE = re.compile(r"^game_(\d{3})_")


class ArtifactIndex(ABC):
    """Enumerates persisted sessions, participants and artifacts."""

    @abstractmethod
    def list_sessions(self) -> list[Session]:
        """Every readable session (without artifacts loaded)."""

    @abstractmethod
    def list_artifacts(self) -> list[GameArtifact]:
        """Every readable artifact, HTML included."""

    @abstractmethod
    def list_participants(self) -> list[Participant]:
        """Every registered participant across sessions."""

    @abstractmethod
    def find_artifact(self, game_id: str) -> GameArtifact:
        """Resolve a gameId to its artifact. Raises NotFoundError."""


def write_json(path: Path, payload) -> None:
    """Write JSON (UTF-8, 2-space indent) as a whole-file replace."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    except OSError as exc:
        raise PersistenceError(path, str(exc)) from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise PersistenceError(path, str(exc)) from exc


def read_json(path: Path):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PersistenceError(path, str(exc)) from exc


def write_text(path: Path, content: str) -> None:
    try:
        Path(path).write_text(content, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(path, str(exc)) from exc


def remove_artifact_files(html_path: Path) -> None:
    """Delete an artifact's HTML file and its sidecar, if present."""
    for p in (html_path, sidecar_path(html_path)):
        try:
            p.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(p, str(exc)) from exc


def game_files(directory: Path) -> list[Path]:
    """``game_*.html`` files in listing order (sorted by name)."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.name.startswith("game_") and p.suffix == ".html"
    )


def _mtime_iso(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()


def load_artifact_file(
    path: Path,
    fields: dict[str, str],
    session_id: str | None = None,
) -> GameArtifact:
    """Rebuild a GameArtifact from one HTML file (+ sidecar)."""
    try:
        content = path.read_text(encoding="utf-8")
        size = path.stat().st_size
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceError(path, str(exc)) from exc

    meta = read_metadata(path, content, fields)
    _, body = split_header(content)

    created_at = meta.get("generated", UNKNOWN)
    if created_at == UNKNOWN:
        created_at = _mtime_iso(path)

    game_index = None
    if "gameIndex" in fields.values():
        game_index = _coerce_index(meta.get("gameIndex"), path.name)

    history = meta.get("promptHistory", [])
    if isinstance(history, str):
        try:
            history = json.loads(history) if history != UNKNOWN else []
        except json.JSONDecodeError:
            history = []

    # The owning directory is authoritative over the header's Session ID
    sid = session_id
    if sid is None and meta.get("sessionId") not in (None, UNKNOWN):
        sid = meta["sessionId"]

    return GameArtifact(
        participant=meta.get("participant", UNKNOWN),
        prompt=meta.get("prompt", UNKNOWN),
        html=body,
        created_at=created_at,
        session_id=sid,
        game_index=game_index,
        prompt_history=list(history) if isinstance(history, list) else [],
        file_name=path.name,
        file_size=size,
    )


def _coerce_index(value, file_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        m = _GAME_INDEX_RE.match(file_name)
        return int(m.group(1)) if m else 1


def scan_artifacts(
    directory: Path,
    fields: dict[str, str],
    session_id: str | None = None,
) -> list[GameArtifact]:
    """Load every artifact in a directory, skipping unreadable files."""
    artifacts = []
    for path in game_files(directory):
        try:
            artifacts.append(load_artifact_file(path, fields, session_id))
        except PersistenceError as exc:
            logger.warning("Skipping unreadable game file %s: %s", path, exc)
    return artifacts
