"""SeedManager — deterministic, HMAC-derived RNG per session.

Seeds are derived via HMAC-SHA256 from the configured seed and the session
id, so adding or removing sessions never shifts another session's theme.
"""

import hashlib
import hmac
import random


class SeedManager:
    """Produces deterministic, isolated Random instances for each session."""

    def __init__(self, game_seed: int):
        self._game_seed = game_seed

    def get_session_seed(self, session_id: str, purpose: str = "theme") -> int:
        """Derive a session seed via HMAC. Same inputs always produce the same seed."""
        key = self._game_seed.to_bytes(8, byteorder="big", signed=True)
        msg = f"{session_id}:{purpose}".encode("utf-8")
        digest = hmac.new(key, msg, hashlib.sha256).digest()
        return int.from_bytes(digest[:8], byteorder="big")

    def get_rng(self, session_id: str, purpose: str = "theme") -> random.Random:
        """Return an isolated Random instance. Never touches global state."""
        return random.Random(self.get_session_seed(session_id, purpose))
