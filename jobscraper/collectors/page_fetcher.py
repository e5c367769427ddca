from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from jobscraper.core.cancellation import CancellationToken
from jobscraper.core.errors import BlockedError, ScrapeCancelled, TransientFetchError
from jobscraper.utils.user_agents import random_user_agent

logger = logging.getLogger(__name__)

BLOCKED_STATUSES = {403, 429}
BLOCK_MARKERS = ("challenge-platform", "captcha-delivery", "px-captcha", "cf-chl-")

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-GB,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
}


@dataclass(slots=True)
class FetchResponse:
    status_code: int
    text: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)


class PageFetcher:
    """httpx-backed page fetch with browser-like headers and a rotating user agent."""

    def __init__(
        self,
        timeout_seconds: float = 20.0,
        proxy: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client = httpx.Client(
            timeout=timeout_seconds,
            follow_redirects=True,
            proxy=proxy,
            transport=transport,
            headers=BROWSER_HEADERS,
        )

    def fetch(self, url: str, token: CancellationToken | None = None) -> FetchResponse:
        if token is not None and token.cancelled:
            raise ScrapeCancelled(f"cancelled before fetching {url}")
        try:
            response = self.client.get(url, headers={"User-Agent": random_user_agent()})
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"{type(exc).__name__}: {exc}") from exc

        status = response.status_code
        if status in BLOCKED_STATUSES:
            raise BlockedError(f"HTTP {status}: {response.reason_phrase} (blocked)", status_code=status)
        if not response.is_success:
            raise TransientFetchError(f"HTTP {status}: {response.reason_phrase}", status_code=status)

        text = response.text
        lowered = text.lower()
        if any(marker in lowered for marker in BLOCK_MARKERS):
            logger.warning("block_page_detected", extra={"extra_fields": {"url": url}})
            raise BlockedError(f"HTTP {status}: anti-bot challenge page (blocked)", status_code=status)

        return FetchResponse(status_code=status, text=text, url=str(response.url), headers=dict(response.headers))

    def close(self) -> None:
        self.client.close()
