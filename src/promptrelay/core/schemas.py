"""Schema loading utility."""

import json
from pathlib import Path

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


def load_schema(name_or_path: str | Path) -> dict:
    """Load a JSON Schema file and return as dict.

    A bare name such as ``"score_result"`` resolves against the packaged
    ``schemas/`` directory.
    """
    path = Path(name_or_path)
    if path.suffix != ".json":
        path = SCHEMA_DIR / f"{name_or_path}.json"
    with open(path, encoding="utf-8") as f:
        return json.load(f)
