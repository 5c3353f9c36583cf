import re

from deepcite.config import settings

TRUNCATION_MARKER = "\n\n[Content truncated due to length]"

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: str | None) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def cap_content(text: str, limit: int | None = None) -> str:
    """Truncate to exactly `limit` characters plus the truncation marker."""
    limit = limit or settings.MAX_CONTENT_LENGTH
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER
