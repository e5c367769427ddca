from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from jobscraper.collectors.page_fetcher import FetchResponse
from jobscraper.core.cancellation import CancellationToken
from jobscraper.core.errors import BlockedError, ScrapeCancelled, TransientFetchError
from jobscraper.core.models import JobRecord, ScrapeOutcome, SearchSpecification
from jobscraper.sources.base import SiteAdapter
from jobscraper.utils.throttle import RateLimiter

logger = logging.getLogger(__name__)

MAX_PAGES = 5
BLOCK_HINTS = ("403", "429", "blocked")


class Fetcher(Protocol):
    def fetch(self, url: str, token: CancellationToken | None = None) -> FetchResponse: ...


@dataclass(slots=True)
class SiteRun:
    outcome: ScrapeOutcome
    records: list[JobRecord] = field(default_factory=list)


def is_blocked(exc: Exception) -> bool:
    if isinstance(exc, BlockedError):
        return True
    if getattr(exc, "status_code", None) in (403, 429):
        return True
    message = str(exc).lower()
    return any(hint in message for hint in BLOCK_HINTS)


class FetchCycle:
    """Paginated fetch/parse loop for one adapter within one scrape.

    Pages are fetched in ascending order until a page parses to nothing, the
    page ceiling is reached, or the token is cancelled. Every attempt, retries
    included, first waits for a rate-limiter slot on the adapter's domain.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        rate_limiter: RateLimiter,
        max_pages: int = MAX_PAGES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.max_pages = max_pages
        self._sleep = sleep

    def run(
        self,
        adapter: SiteAdapter,
        spec: SearchSpecification,
        token: CancellationToken,
        on_progress: Callable[[int], None] | None = None,
    ) -> SiteRun:
        started = time.monotonic()
        records: list[JobRecord] = []

        def finish(status: str, error: str | None = None) -> SiteRun:
            outcome = ScrapeOutcome(
                site=adapter.name,
                status=status,
                jobs_found=len(records),
                error=error,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return SiteRun(outcome=outcome, records=records)

        for page in range(1, self.max_pages + 1):
            if token.cancelled:
                logger.info("site_cancelled", extra={"extra_fields": {"site": adapter.name, "page": page}})
                return finish("partial", "scrape cancelled")

            url = adapter.build_query_url(spec, page)
            try:
                response = self._fetch_with_retries(adapter, url, page, token)
            except ScrapeCancelled:
                return finish("partial", "scrape cancelled")
            except TransientFetchError as exc:
                status = "blocked" if is_blocked(exc) else "failed"
                logger.error(
                    "site_fetch_failed",
                    extra={"extra_fields": {"site": adapter.name, "page": page, "status": status, "error": str(exc)}},
                )
                return finish(status, str(exc))

            try:
                page_records = adapter.parse_listing_page(response.text, spec)
            except Exception as exc:  # noqa: BLE001
                logger.exception("page_parse_failed", extra={"extra_fields": {"site": adapter.name, "page": page}})
                return finish("failed", f"parse error on page {page}: {exc}")
            logger.debug(
                "page_parsed",
                extra={"extra_fields": {"site": adapter.name, "page": page, "records": len(page_records)}},
            )
            if not page_records:
                break
            records.extend(page_records)
            if on_progress is not None:
                on_progress(len(records))

        return finish("success")

    def _fetch_with_retries(
        self, adapter: SiteAdapter, url: str, page: int, token: CancellationToken
    ) -> FetchResponse:
        retries = 0
        while True:
            self.rate_limiter.wait_for_slot(adapter.domain)
            try:
                return self.fetcher.fetch(url, token)
            except BlockedError:
                raise
            except TransientFetchError as exc:
                retries += 1
                if retries > self.rate_limiter.max_retries:
                    raise
                backoff = self.rate_limiter.backoff_delay(retries)
                logger.warning(
                    "fetch_retry",
                    extra={
                        "extra_fields": {
                            "site": adapter.name,
                            "page": page,
                            "attempt": retries,
                            "backoff_seconds": round(backoff, 2),
                            "error": str(exc),
                        }
                    },
                )
                self._sleep(backoff)
