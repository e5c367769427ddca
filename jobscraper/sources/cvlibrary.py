from __future__ import annotations

from bs4 import Tag

from jobscraper.core.models import JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text, has_location_filter, with_query

DATE_POSTED_MAP = {"24h": "1", "7d": "7", "14d": "14", "30d": "30"}
CONTRACT_TYPE_MAP = {
    "permanent": "Permanent",
    "contract": "Contract",
    "temporary": "Temporary",
    "part-time": "Part Time",
}


class CVLibraryAdapter(SiteAdapter):
    name = "cvlibrary"
    base_url = "https://www.cv-library.co.uk"
    listing_selector = ".job-result, .results__item, [data-job-id]"

    TITLE = ".job-result__anchor, h2 a, .results__item-title a"

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        params = {"q": spec.keywords}
        if has_location_filter(spec):
            params["geo"] = spec.location
        if page > 1:
            params["page"] = str(page)
        if spec.salary_min > 0:
            params["salarymin"] = str(spec.salary_min)
        if spec.salary_max > 0:
            params["salarymax"] = str(spec.salary_max)
        if spec.date_posted in DATE_POSTED_MAP:
            params["posted"] = DATE_POSTED_MAP[spec.date_posted]
        if spec.contract_type in CONTRACT_TYPE_MAP:
            params["tempperm"] = CONTRACT_TYPE_MAP[spec.contract_type]
        if spec.radius_miles > 0:
            params["distance"] = str(spec.radius_miles)
        return with_query(f"{self.base_url}/search-jobs", params)

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        return self.make_record(
            spec,
            scraped_at,
            title=first_text(element, self.TITLE),
            href=first_attr(element, self.TITLE, "href"),
            company=first_text(element, ".job-result__company, .results__item-company"),
            location=first_text(element, ".job-result__location, .results__item-location"),
            salary=first_text(element, ".job-result__salary, .results__item-salary"),
            posted_date=first_text(element, ".job-result__date, .results__item-date"),
            description=first_text(element, ".job-result__description, .results__item-description"),
        )
