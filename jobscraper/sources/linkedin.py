from __future__ import annotations

from bs4 import Tag

from jobscraper.core.models import DEFAULT_LOCATION, JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text, with_query

RESULTS_PER_PAGE = 25
UK_GEO_ID = "101165590"

DATE_POSTED_MAP = {"24h": "r86400", "7d": "r604800", "14d": "r1209600", "30d": "r2592000"}
CONTRACT_TYPE_MAP = {"permanent": "F", "contract": "C", "temporary": "T", "part-time": "P"}
WORK_MODE_MAP = {"remote": "2", "hybrid": "3", "onsite": "1"}


class LinkedInAdapter(SiteAdapter):
    """Public (logged-out) LinkedIn job search."""

    name = "linkedin"
    base_url = "https://www.linkedin.com"
    listing_selector = ".base-card, .job-search-card, .jobs-search__results-list li"

    TITLE = ".base-card__full-link, .base-search-card__title, h3.base-search-card__title a"

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        params = {
            "keywords": spec.keywords,
            "location": spec.location or DEFAULT_LOCATION,
            "geoId": UK_GEO_ID,
        }
        if page > 1:
            params["start"] = str((page - 1) * RESULTS_PER_PAGE)
        if spec.date_posted in DATE_POSTED_MAP:
            params["f_TPR"] = DATE_POSTED_MAP[spec.date_posted]
        if spec.contract_type in CONTRACT_TYPE_MAP:
            params["f_JT"] = CONTRACT_TYPE_MAP[spec.contract_type]
        if spec.work_mode in WORK_MODE_MAP:
            params["f_WT"] = WORK_MODE_MAP[spec.work_mode]
        return with_query(f"{self.base_url}/jobs/search", params)

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        title = first_text(element, self.TITLE) or first_text(element, "h3")
        location = first_text(element, ".job-search-card__location, .base-search-card__metadata span")
        posted_date = first_text(element, ".job-search-card__listdate, time") or first_attr(element, "time", "datetime")
        return self.make_record(
            spec,
            scraped_at,
            title=title,
            href=first_attr(element, self.TITLE, "href") or first_attr(element, "a", "href"),
            company=first_text(element, ".base-search-card__subtitle, h4.base-search-card__subtitle a"),
            location=location,
            posted_date=posted_date,
            work_mode=spec.work_mode if spec.work_mode != "all" else None,
        )
