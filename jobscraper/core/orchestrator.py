from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from jobscraper.collectors.fetch_cycle import MAX_PAGES, Fetcher, FetchCycle
from jobscraper.collectors.page_fetcher import PageFetcher
from jobscraper.core.cancellation import CancellationToken
from jobscraper.core.errors import AdapterUnavailable, ConcurrentScrapeRejected
from jobscraper.core.events import LoggingProgressSink, ProgressSink
from jobscraper.core.models import ProgressEvent, ScrapeOutcome, ScrapeSummary, SearchSpecification
from jobscraper.sources.registry import AdapterRegistry, default_registry
from jobscraper.storage.base import JobStore
from jobscraper.utils.config import ScraperSettings
from jobscraper.utils.throttle import RateLimiter

logger = logging.getLogger(__name__)


class ScrapeEngine:
    """Single-flight scrape across the sites of one search specification.

    Sites are visited sequentially in the specification's order. Each call
    owns a fresh cancellation token which ``stop`` trips.
    """

    def __init__(
        self,
        store: JobStore,
        settings: ScraperSettings | None = None,
        registry: AdapterRegistry | None = None,
        fetcher: Fetcher | None = None,
        rate_limiter: RateLimiter | None = None,
        sink: ProgressSink | None = None,
        max_pages: int = MAX_PAGES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or ScraperSettings()
        self.store = store
        self.registry = registry or default_registry()
        self.rate_limiter = rate_limiter or RateLimiter(
            base_delay=self.settings.request_delay_seconds,
            max_retries=self.settings.max_retries,
            sleep=sleep,
        )
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or PageFetcher(timeout_seconds=self.settings.timeout_seconds, proxy=self.settings.proxy)
        self.sink = sink or LoggingProgressSink()
        self.cycle = FetchCycle(self.fetcher, self.rate_limiter, max_pages=max_pages, sleep=sleep)
        self._lock = threading.Lock()
        self._running = False
        self._token: CancellationToken | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def update_settings(self, request_delay_seconds: float, max_retries: int) -> None:
        self.rate_limiter.set_base_delay(request_delay_seconds)
        self.rate_limiter.set_max_retries(max_retries)

    def close(self) -> None:
        if self._owns_fetcher and isinstance(self.fetcher, PageFetcher):
            self.fetcher.close()

    def stop(self) -> None:
        with self._lock:
            token = self._token
        if token is not None:
            logger.info("scrape_stop_requested")
            token.cancel()

    def scrape(self, spec: SearchSpecification, sink: ProgressSink | None = None) -> list[ScrapeOutcome]:
        spec.validate()
        with self._lock:
            if self._running:
                raise ConcurrentScrapeRejected("A scrape is already in progress")
            self._running = True
            token = CancellationToken()
            self._token = token

        sink = sink or self.sink
        sites = list(spec.sites)
        outcomes: list[ScrapeOutcome] = []
        total_found = 0
        logger.info("scrape_started", extra={"extra_fields": {"profile": spec.name, "sites": sites}})

        try:
            for index, site in enumerate(sites):
                progress = ProgressEvent(
                    current_site=site,
                    sites_completed=index,
                    total_sites=len(sites),
                    jobs_found=total_found,
                    status=f"Scraping {site}...",
                )
                sink.on_progress(progress)

                try:
                    adapter = self.registry.get(site)
                except AdapterUnavailable:
                    logger.warning("adapter_unavailable", extra={"extra_fields": {"site": site}})
                    outcomes.append(ScrapeOutcome(site=site, status="failed", error="adapter not available"))
                    continue

                def report(count: int, progress: ProgressEvent = progress, found_before: int = total_found) -> None:
                    sink.on_progress(
                        ProgressEvent(
                            current_site=progress.current_site,
                            sites_completed=progress.sites_completed,
                            total_sites=progress.total_sites,
                            jobs_found=found_before + count,
                            status=f"Scraping {progress.current_site}... Found {count} jobs",
                        )
                    )

                run = self.cycle.run(adapter, spec, token, on_progress=report)
                new_jobs = 0
                for record in run.records:
                    if self.store.insert_if_absent(record).inserted:
                        new_jobs += 1
                run.outcome.new_jobs = new_jobs
                total_found += run.outcome.jobs_found
                outcomes.append(run.outcome)
                logger.info(
                    "site_complete",
                    extra={
                        "extra_fields": {
                            "site": site,
                            "status": run.outcome.status,
                            "found": run.outcome.jobs_found,
                            "new": new_jobs,
                            "duration_ms": run.outcome.duration_ms,
                        }
                    },
                )

            summary = ScrapeSummary(outcomes=list(outcomes), cancelled=token.cancelled)
            sink.on_complete(summary)
            return outcomes
        finally:
            with self._lock:
                self._running = False
                self._token = None
            self.rate_limiter.reset_counts()
