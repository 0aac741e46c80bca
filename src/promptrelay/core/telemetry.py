"""TelemetryLogger — JSONL session logging.

One logger per session. Writes one JSONL line per turn plus a session
summary as the final line. All entries include schema version and
session ID.
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path

import promptrelay

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = "1.0.0"


@dataclass
class TelemetryEntry:
    """One prompt turn of session telemetry."""

    turn_number: int
    participant: str
    prompt: str
    model_id: str
    model_version: str
    raw_output: str
    finish_reason: str
    extraction_strategy: str | None
    repaired: bool
    fallback_reason: str | None
    file_name: str | None
    input_tokens: int
    output_tokens: int
    latency_ms: float
    remaining_s: int
    engine_version: str


class TelemetryLogger:
    """Writes JSONL telemetry for a single session."""

    def __init__(self, output_dir: Path, session_id: str):
        self._output_dir = Path(output_dir)
        self._session_id = session_id
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._output_dir / f"{session_id}.jsonl"

    @property
    def file_path(self) -> Path:
        return self._file_path

    def log_turn(self, entry: TelemetryEntry) -> None:
        record = asdict(entry)
        record["schema_version"] = _SCHEMA_VERSION
        record["session_id"] = self._session_id
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._append(record)

    def finalize_session(
        self,
        final_state: str,
        turns: int,
        participants: list[str],
        extra: dict | None = None,
    ) -> None:
        record = {
            "schema_version": _SCHEMA_VERSION,
            "record_type": "session_summary",
            "session_id": self._session_id,
            "final_state": final_state,
            "turns": turns,
            "participants": participants,
            "engine_version": promptrelay.__version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if extra:
            record.update(extra)
        self._append(record)

    def _append(self, record: dict) -> None:
        # Telemetry never breaks a turn
        try:
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError as exc:
            logger.warning("Telemetry write failed for %s: %s", self._file_path, exc)
