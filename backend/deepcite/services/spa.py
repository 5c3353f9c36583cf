"""Client-rendering detection on raw HTML.

A single marker is enough. False positives only cost an extra headless
render; false negatives are caught by the content-length check.
"""

import re

_SPA_PATTERNS = [
    # Framework mount points
    re.compile(r"<div[^>]*\bid=[\"']root[\"']", re.IGNORECASE),
    re.compile(r"<div[^>]*\bid=[\"']app[\"']", re.IGNORECASE),
    re.compile(r"<div[^>]*\bid=[\"']__next[\"']", re.IGNORECASE),
    re.compile(r"<div[^>]*\bid=[\"']__nuxt[\"']", re.IGNORECASE),
    # Framework data attributes
    re.compile(r"data-react-", re.IGNORECASE),
    re.compile(r"\bng-app\b", re.IGNORECASE),
    # Framework bundles
    re.compile(r"<script[^>]*src=[\"'][^\"']*react[^\"']*[\"']", re.IGNORECASE),
    re.compile(r"<script[^>]*src=[\"'][^\"']*vue[^\"']*[\"']", re.IGNORECASE),
    re.compile(r"<script[^>]*src=[\"'][^\"']*angular[^\"']*[\"']", re.IGNORECASE),
]


def is_client_rendered(html: str) -> bool:
    if not html:
        return False
    return any(pattern.search(html) for pattern in _SPA_PATTERNS)
