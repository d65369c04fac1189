"""
Helpers for preparing scraped content before AI analysis.
"""
import re
from urllib.parse import unquote

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_WHITESPACE = re.compile(r"\s+")

BINARY_SIGNATURES = (
    "\x00\x00\x00",     # null bytes
    "PK\x03\x04",       # zip / docx / xlsx
    "\x1f\x8b",         # gzip
    "Rar!",             # rar
    "\x89PNG",          # png
    "\xff\xd8\xff",     # jpeg
)

# Above this many control characters in the inspected prefix the payload is
# treated as binary.
CONTROL_CHAR_THRESHOLD = 50
INSPECTED_PREFIX = 500


def is_binary_content(content: str) -> bool:
    """Whether scraped text is really a binary payload (PDF, archive, image)."""
    if not content or len(content) < 10:
        return False

    if content.startswith("%PDF"):
        return True

    prefix = content[:INSPECTED_PREFIX]
    control_chars = sum(1 for c in prefix if ord(c) < 32 and c not in "\t\n\r")
    if control_chars > CONTROL_CHAR_THRESHOLD:
        return True

    return content.startswith(BINARY_SIGNATURES)


def clean_content_for_ai(content: str, max_length: int = 15000) -> str:
    """Strip control characters, collapse whitespace and truncate."""
    if not content:
        return ""
    cleaned = _CONTROL_CHARS.sub(" ", content)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:max_length]


def file_name_from_url(url: str, default: str = "Document") -> str:
    """Last path segment of a URL, URL-decoded, without query string."""
    last_segment = url.split("?", 1)[0].split("#", 1)[0].rstrip("/").split("/")[-1]
    if not last_segment or last_segment.endswith(":"):
        return default
    return unquote(last_segment) or default
