from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict

from jobscraper.core.models import ProgressEvent, ScrapeSummary

logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    @abstractmethod
    def on_progress(self, event: ProgressEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_complete(self, summary: ScrapeSummary) -> None:
        raise NotImplementedError

    @abstractmethod
    def notify(self, title: str, message: str) -> None:
        raise NotImplementedError


class LoggingProgressSink(ProgressSink):
    def on_progress(self, event: ProgressEvent) -> None:
        logger.info("scrape_progress", extra={"extra_fields": asdict(event)})

    def on_complete(self, summary: ScrapeSummary) -> None:
        logger.info(
            "scrape_complete",
            extra={
                "extra_fields": {
                    "total_found": summary.total_found,
                    "total_new": summary.total_new,
                    "cancelled": summary.cancelled,
                    "sites": {outcome.site: outcome.status for outcome in summary.outcomes},
                }
            },
        )

    def notify(self, title: str, message: str) -> None:
        logger.info("notification", extra={"extra_fields": {"title": title, "message": message}})
