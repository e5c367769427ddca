from __future__ import annotations

import re
from urllib.parse import urljoin

DESCRIPTION_LIMIT = 500

REMOTE_MARKERS = ("remote", "work from home")
HYBRID_MARKERS = ("hybrid",)


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def truncate_description(text: str, max_length: int = DESCRIPTION_LIMIT) -> str:
    if len(text) <= max_length:
        return text
    return re.sub(r"\s+\S*$", "", text[:max_length]) + "..."


def resolve_url(base_url: str, href: str) -> str:
    href = href.strip()
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base_url.rstrip("/") + "/", href)


def detect_work_mode(text: str) -> str:
    lower = text.lower()
    if any(marker in lower for marker in REMOTE_MARKERS):
        return "remote"
    if any(marker in lower for marker in HYBRID_MARKERS):
        return "hybrid"
    return "onsite"
