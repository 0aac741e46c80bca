"""HtmlExtractor — recover a standalone HTML document from raw model output.

Strategies run in a fixed order and the first match wins; there is no
scoring between them:

1. ``<!DOCTYPE html> ... </html>`` span
2. ``<html ... </html>`` span
3. fenced code block (``html``-labelled, or unlabelled starting with markup)
4. loose containment of ``<html`` and ``</html>`` → whole trimmed text
5. truncation repair, only for MAX_TOKENS output that opened ``<html``

Spans stop at the first closing ``</html>``. Repair appends closers for an
unclosed script, body and html, in that order, and nothing else.
"""

from __future__ import annotations

import html as _html
import re
from dataclasses import dataclass
from enum import Enum

from promptrelay.core.errors import GenerationIncomplete


class FinishReason(Enum):
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    OTHER = "OTHER"

    @classmethod
    def coerce(cls, value) -> FinishReason:
        """Map a FinishReason or provider string onto the enum."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


_DOCTYPE_RE = re.compile(r"<!DOCTYPE html>.*?</html>", re.IGNORECASE | re.DOTALL)
_HTML_RE = re.compile(r"<html.*?</html>", re.IGNORECASE | re.DOTALL)

_FENCE_PATTERNS = [
    re.compile(r"```html\r?\n(.*?)\r?\n```", re.DOTALL),
    re.compile(r"```\r?\n(<!DOCTYPE html.*?)\r?\n```", re.DOTALL),
    re.compile(r"```\r?\n(<html.*?)\r?\n```", re.DOTALL),
]

_SCRIPT_OPEN_RE = re.compile(r"<script\b", re.IGNORECASE)
_SCRIPT_CLOSE_RE = re.compile(r"</script\s*>", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractResult:
    """Result of running the extraction pipeline over one response."""

    success: bool
    html: str | None
    strategy: str | None  # "doctype", "html_tag", "fence", "contains", "repair"
    repaired: bool
    error: str | None


class HtmlExtractor:
    """Runs the ordered extraction strategies over raw model text."""

    def extract(self, raw_text: str, finish_reason) -> ExtractResult:
        reason = FinishReason.coerce(finish_reason)

        if reason is FinishReason.OTHER:
            return _failure(f"Generation stopped unexpectedly: {finish_reason}")
        if not raw_text or not raw_text.strip():
            return _failure("Model returned an empty response")

        m = _DOCTYPE_RE.search(raw_text)
        if m:
            return _success(m.group(0), "doctype")

        m = _HTML_RE.search(raw_text)
        if m:
            return _success(m.group(0), "html_tag")

        for pattern in _FENCE_PATTERNS:
            m = pattern.search(raw_text)
            if m and m.group(1):
                return _success(m.group(1), "fence")

        if "<html" in raw_text and "</html>" in raw_text:
            return _success(raw_text.strip(), "contains")

        if reason is FinishReason.MAX_TOKENS and "<html" in raw_text:
            return ExtractResult(
                success=True,
                html=repair_truncated(raw_text),
                strategy="repair",
                repaired=True,
                error=None,
            )

        return _failure("No HTML document found in generated output")


def repair_truncated(text: str) -> str:
    """Close an unclosed script, then body, then html. Nothing else."""
    fixed = text.strip()
    if len(_SCRIPT_OPEN_RE.findall(fixed)) > len(_SCRIPT_CLOSE_RE.findall(fixed)):
        fixed += "\n</script>"
    if "</body>" not in fixed.lower():
        fixed += "\n</body>"
    if "</html>" not in fixed.lower():
        fixed += "\n</html>"
    return fixed


def extract_html(raw_text: str, finish_reason) -> str:
    """Return extracted HTML or raise GenerationIncomplete."""
    result = HtmlExtractor().extract(raw_text, finish_reason)
    if not result.success:
        raise GenerationIncomplete(result.error or "extraction failed")
    return result.html


def _success(html: str, strategy: str) -> ExtractResult:
    return ExtractResult(
        success=True, html=html, strategy=strategy, repaired=False, error=None
    )


def _failure(error: str) -> ExtractResult:
    return ExtractResult(
        success=False, html=None, strategy=None, repaired=False, error=error
    )


_ERROR_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Generation Error</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, sans-serif;
            display: flex;
            justify-content: center;
            align-items: center;
            min-height: 100vh;
            margin: 0;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        }
        .error-container {
            background: white;
            padding: 30px;
            border-radius: 15px;
            text-align: center;
            box-shadow: 0 10px 30px rgba(0,0,0,0.2);
        }
        h2 { color: #e74c3c; margin-bottom: 10px; }
        p { color: #555; margin: 10px 0; }
        button {
            background: #667eea;
            color: white;
            border: none;
            padding: 10px 20px;
            border-radius: 5px;
            cursor: pointer;
            margin-top: 15px;
        }
        button:hover { background: #5a67d8; }
    </style>
</head>
<body>
    <div class="error-container">
        <h2>Game generation failed</h2>
        <p>__MESSAGE__</p>
        <p>Try again with a different prompt.</p>
        <button onclick="location.reload()">Reload</button>
    </div>
</body>
</html>"""


def error_document(message: str) -> str:
    """Self-contained error page shown in place of a failed generation."""
    return _ERROR_TEMPLATE.replace("__MESSAGE__", _html.escape(message))
