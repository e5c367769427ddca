from __future__ import annotations


class ScraperError(RuntimeError):
    pass


class TransientFetchError(ScraperError):
    """A page fetch failed in a way that may succeed on retry."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BlockedError(TransientFetchError):
    """The site answered with 403/429 or a known anti-bot page."""


class ScrapeCancelled(ScraperError):
    pass


class ParseSkip(ScraperError):
    """A single listing element could not be turned into a record."""


class AdapterUnavailable(ScraperError):
    pass


class InvalidSchedule(ScraperError):
    pass


class ConcurrentScrapeRejected(ScraperError):
    pass


class InvalidSpecification(ValueError):
    pass
