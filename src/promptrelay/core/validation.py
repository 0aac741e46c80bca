"""Input validation — pure shape checks, no disk or network access.

Every validator returns a ValidationResult. Soft fields (theme, session name)
substitute defaults when absent; hard fields (prompt, participant names)
reject empty input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

MAX_PROMPT_CHARS = 1000
MAX_PARTICIPANT_CHARS = 50
MAX_PARTICIPANTS = 10
MAX_SESSION_NAME_CHARS = 100
MAX_THEME_CHARS = 200

DEFAULT_THEME = "Build a mini-game you can play in 5 seconds!"

_SESSION_ID_RE = re.compile(r"^session_\d{14}_[a-z0-9]+$")
_PARTICIPANT_RE = re.compile(r"^[\w\s\-]+$")
_SESSION_FILE_RE = re.compile(r"^game_\d{3}_[\w\s\-]+\.html$")
_FLAT_FILE_RE = re.compile(r"^game_\d{14}_\w+\.html$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation check."""

    valid: bool
    message: str | None = None
    sanitized: Any = field(default=None)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(valid=False, message=message)


def _ok(sanitized: Any = None) -> ValidationResult:
    return ValidationResult(valid=True, sanitized=sanitized)


def validate_prompt(prompt: Any) -> ValidationResult:
    if not isinstance(prompt, str) or not prompt.strip():
        return _fail("A prompt is required")
    trimmed = prompt.strip()
    if len(trimmed) > MAX_PROMPT_CHARS:
        return _fail(f"Prompts must be {MAX_PROMPT_CHARS} characters or fewer")
    return _ok(trimmed)


def validate_participant_name(name: Any) -> ValidationResult:
    if not isinstance(name, str) or not name.strip():
        return _fail("A participant name is required")
    trimmed = name.strip()
    if len(trimmed) > MAX_PARTICIPANT_CHARS:
        return _fail(
            f"Participant names must be {MAX_PARTICIPANT_CHARS} characters or fewer"
        )
    # \w is unicode-aware, so kana/kanji/accented names pass; "_" is in \w
    if not _PARTICIPANT_RE.match(trimmed):
        return _fail(f"Participant name contains unsupported characters: {trimmed}")
    return _ok(trimmed)


def validate_participants(raw: Any) -> ValidationResult:
    """Validate a signup batch: comma-separated string or list of names."""
    if isinstance(raw, str):
        if not raw.strip():
            return _fail("Enter at least one participant name")
        entries = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        return _fail("Enter at least one participant name")

    names = [e.strip() for e in entries if isinstance(e, str) and e.strip()]
    if not names:
        return _fail("Enter at least one valid participant name")
    if len(names) > MAX_PARTICIPANTS:
        return _fail(f"At most {MAX_PARTICIPANTS} participants can join")

    for name in names:
        result = validate_participant_name(name)
        if not result.valid:
            return result

    seen: set[str] = set()
    for name in names:
        if name in seen:
            return _fail(f"Duplicate participant name: {name}")
        seen.add(name)

    return _ok(names)


def validate_session_id(session_id: Any) -> ValidationResult:
    if not isinstance(session_id, str) or not session_id:
        return _fail("A session ID is required")
    if not _SESSION_ID_RE.match(session_id):
        return _fail("Invalid session ID")
    return _ok(session_id)


def validate_file_name(file_name: Any) -> ValidationResult:
    if not isinstance(file_name, str) or not file_name:
        return _fail("A file name is required")
    if "/" in file_name or "\\" in file_name or ".." in file_name:
        return _fail("Invalid file name")
    if not (_SESSION_FILE_RE.match(file_name) or _FLAT_FILE_RE.match(file_name)):
        return _fail("Invalid file name")
    return _ok(file_name)


def validate_theme(theme: Any) -> ValidationResult:
    if not isinstance(theme, str) or not theme.strip():
        return _ok(DEFAULT_THEME)
    trimmed = theme.strip()
    if len(trimmed) > MAX_THEME_CHARS:
        return _fail(f"Themes must be {MAX_THEME_CHARS} characters or fewer")
    return _ok(trimmed)


def validate_session_name(name: Any, now: datetime | None = None) -> ValidationResult:
    if not isinstance(name, str) or not name.strip():
        now = now or datetime.now()
        return _ok(f"Session {now.strftime('%Y-%m-%d %H:%M:%S')}")
    trimmed = name.strip()
    if len(trimmed) > MAX_SESSION_NAME_CHARS:
        return _fail(
            f"Session names must be {MAX_SESSION_NAME_CHARS} characters or fewer"
        )
    return _ok(trimmed)


def merge_validation_results(results: list[ValidationResult]) -> ValidationResult:
    """Collapse several results into one, joining every failure message."""
    errors = [r.message or "invalid" for r in results if not r.valid]
    if errors:
        return _fail(", ".join(errors))
    return _ok()
