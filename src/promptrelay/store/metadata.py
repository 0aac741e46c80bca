"""Artifact metadata — HTML comment header plus a JSON sidecar.

Header layout (read by other tools, keep byte-compatible)::

    <!--
    Session ID: session_20250101120000_abc123xyz
    Participant: Aki
    Prompt: make a clicker
    Game Index: 1
    Generated: 2025-01-01T12:00:00+00:00
    -->
    <!DOCTYPE html>...

The sidecar ``<stem>.json`` carries the same fields losslessly (multi-line
prompts, prompts containing ``-->``). Readers prefer the sidecar and fall
back to the header; a field missing from both reads back as ``"Unknown"``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from promptrelay.core.sanitizer import header_value
from promptrelay.models import UNKNOWN

logger = logging.getLogger(__name__)

_HEADER_OPEN = "<!--"
_HEADER_CLOSE = "-->"

# Header key -> sidecar key
SESSION_FIELDS = {
    "Session ID": "sessionId",
    "Participant": "participant",
    "Prompt": "prompt",
    "Game Index": "gameIndex",
    "Generated": "generated",
}

FLAT_FIELDS = {
    "Participant": "participant",
    "Prompt": "prompt",
    "PromptHistory": "promptHistory",
    "Generated": "generated",
}


def render_header(fields: dict[str, object]) -> str:
    """Build the comment header. ``fields`` maps header keys to values."""
    lines = [_HEADER_OPEN]
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, (list, dict)):
            value = json.dumps(value, ensure_ascii=False)
        lines.append(f"{key}: {header_value(value)}")
    lines.append(_HEADER_CLOSE)
    return "\n".join(lines) + "\n"


def split_header(content: str) -> tuple[str, str]:
    """Return (header_block, html_body). No header → ("", content)."""
    if not content.lstrip().startswith(_HEADER_OPEN):
        return "", content
    end = content.find(_HEADER_CLOSE)
    if end == -1:
        return "", content
    header = content[:end]
    body = content[end + len(_HEADER_CLOSE):]
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    return header, body


def parse_header(header: str, keys) -> dict[str, str]:
    """Regex-extract ``Key: value`` lines; missing keys map to UNKNOWN."""
    values = {}
    for key in keys:
        m = re.search(rf"^{re.escape(key)}: (.*)$", header, re.MULTILINE)
        values[key] = m.group(1).rstrip("\r") if m else UNKNOWN
    return values


def sidecar_path(html_path: Path) -> Path:
    return html_path.with_suffix(".json")


def read_metadata(html_path: Path, content: str, fields: dict[str, str]) -> dict:
    """Merge sidecar and header metadata into sidecar-keyed values.

    Sidecar values win. Every sidecar key in ``fields`` is present in the
    result; absent ones are UNKNOWN.
    """
    header, _ = split_header(content)
    from_header = parse_header(header, fields.keys())
    merged = {fields[k]: v for k, v in from_header.items()}

    side = sidecar_path(html_path)
    if side.exists():
        try:
            record = json.loads(side.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable sidecar %s, using header: %s", side, exc)
            record = {}
        if isinstance(record, dict):
            for key in fields.values():
                if record.get(key) is not None:
                    merged[key] = record[key]
    return merged
