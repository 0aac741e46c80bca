"""ScoreParser — extract and validate the evaluator's JSON verdict.

Finds JSON objects in raw model text, validates each against a JSON Schema,
and keeps the last valid one.

Uses last-wins semantics: an evaluator that revises itself mid-output
("Actually, playability should be lower...") gets its final answer used,
not its first draft.
"""

import json
import re
from dataclasses import dataclass

import jsonschema

# Outermost { ... } with at most one level of nesting (detailScores)
_JSON_OBJECT_RE = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")


@dataclass(frozen=True)
class ParseResult:
    """Result of parsing an evaluator's raw output."""

    success: bool
    payload: dict | None
    raw_json: str | None
    error: str | None


class ScoreParser:
    """Extract the last schema-valid JSON object from text."""

    def parse(self, raw_text: str, schema: dict) -> ParseResult:
        candidates = _JSON_OBJECT_RE.findall(raw_text or "")

        if not candidates:
            return ParseResult(
                success=False,
                payload=None,
                raw_json=None,
                error="No JSON object found in output",
            )

        last_error = None
        best = None  # last valid (payload, raw_json) pair

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError as e:
                last_error = f"JSON parse error: {e}"
                continue

            if not isinstance(parsed, dict):
                last_error = "JSON value is not an object"
                continue

            try:
                jsonschema.validate(parsed, schema)
            except jsonschema.ValidationError as e:
                last_error = f"Schema validation: {e.message}"
                continue

            best = (parsed, candidate)

        if best:
            return ParseResult(
                success=True,
                payload=best[0],
                raw_json=best[1],
                error=None,
            )

        return ParseResult(
            success=False,
            payload=None,
            raw_json=candidates[0],
            error=last_error,
        )
