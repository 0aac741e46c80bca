"""Text sanitization for model output and file-name components.

All model output passes through sanitize_text before the extraction
pipeline sees it. Participant names pass through safe_file_component
before they become part of a flat-mode file name.
"""

import re

# Control chars to strip (keep \t=0x09, \n=0x0a, \r=0x0d)
_CONTROL_RE = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]"
)

# Zero-width and BOM characters
_ZERO_WIDTH_RE = re.compile(
    r"[\u200b\u200c\u200d\u2060\ufeff\u00ad]"
)

_UNSAFE_FILE_CHARS_RE = re.compile(r"[^a-zA-Z0-9]")


def sanitize_text(text: str) -> str:
    """Strip control characters and zero-width chars. Preserves normal unicode."""
    text = _CONTROL_RE.sub("", text)
    text = _ZERO_WIDTH_RE.sub("", text)
    return text


def safe_file_component(name: str) -> str:
    """Replace every non-ASCII-alphanumeric character with an underscore.

    Lossy: different names can map to the same component, so callers that
    need the real participant must read it from the artifact metadata.
    """
    return _UNSAFE_FILE_CHARS_RE.sub("_", name) or "_"


def header_value(value: object) -> str:
    """Flatten a value into one header line that cannot close the comment."""
    text = str(value).replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    return text.replace("-->", "--&gt;")
