"""File-backed artifact store.

Usage:
    from promptrelay.store import SessionStore, FlatGameStore

    store = SessionStore(Path("data"))
    for artifact in store.list_artifacts():
        print(artifact.game_id, artifact.participant)
"""

from .base import ArtifactIndex
from .flat_store import FlatGameStore
from .session_store import SessionStore

__all__ = [
    "ArtifactIndex",
    "FlatGameStore",
    "SessionStore",
]
