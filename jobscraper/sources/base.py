from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from urllib.parse import urlencode, urlparse

from bs4 import BeautifulSoup, Tag

from jobscraper.core.errors import ParseSkip
from jobscraper.core.models import DEFAULT_LOCATION, JobRecord, SearchSpecification, now_iso
from jobscraper.utils.text import detect_work_mode, normalize_whitespace, resolve_url, truncate_description

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"


class SiteAdapter(ABC):
    """Query dialect and listing-page parser for one job site.

    Subclasses describe a site with ``build_query_url`` and ``parse_listing``;
    the page-level loop and the per-element skip handling live here.
    """

    name: str
    base_url: str
    listing_selector: str

    @property
    def domain(self) -> str:
        return urlparse(self.base_url).netloc

    @abstractmethod
    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        raise NotImplementedError

    @abstractmethod
    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        raise NotImplementedError

    def parse_listing_page(self, html: str, spec: SearchSpecification) -> list[JobRecord]:
        soup = BeautifulSoup(html, "html.parser")
        scraped_at = now_iso()
        records: list[JobRecord] = []
        seen: set[tuple[str, str]] = set()
        for element in soup.select(self.listing_selector):
            try:
                record = self.parse_listing(element, spec, scraped_at)
            except ParseSkip as exc:
                logger.debug("listing_skipped", extra={"extra_fields": {"site": self.name, "reason": str(exc)}})
                continue
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "listing_skipped",
                    extra={"extra_fields": {"site": self.name, "reason": f"{type(exc).__name__}: {exc}"}},
                    exc_info=True,
                )
                continue
            if record.dedup_key in seen:
                continue
            seen.add(record.dedup_key)
            records.append(record)
        return records

    def make_record(
        self,
        spec: SearchSpecification,
        scraped_at: str,
        *,
        title: str,
        href: str,
        company: str = "",
        location: str = "",
        salary: str = "",
        posted_date: str = "",
        description: str = "",
        work_mode: str | None = None,
    ) -> JobRecord:
        if not title:
            raise ParseSkip("listing has no title")
        if not href:
            raise ParseSkip(f"listing '{title}' has no link")
        location = location or spec.location
        description = truncate_description(description)
        if work_mode is None:
            work_mode = detect_work_mode(f"{title} {location} {description}")
        return JobRecord(
            title=title,
            company=company or NOT_SPECIFIED,
            location=location,
            salary=salary or NOT_SPECIFIED,
            posted_date=posted_date,
            description=description,
            url=resolve_url(self.base_url, href),
            source=self.name,
            contract_type=spec.contract_type,
            work_mode=work_mode,
            scraped_at=scraped_at,
            specification_id=spec.id,
        )


def first_text(element: Tag, selector: str) -> str:
    found = element.select_one(selector)
    if found is None:
        return ""
    return normalize_whitespace(found.get_text(" "))


def first_attr(element: Tag, selector: str, attr: str) -> str:
    found = element.select_one(selector)
    if found is None:
        return ""
    value = found.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def has_location_filter(spec: SearchSpecification) -> bool:
    return bool(spec.location) and spec.location != DEFAULT_LOCATION


def with_query(url: str, params: dict[str, str]) -> str:
    if not params:
        return url
    return f"{url}?{urlencode(params)}"
