from __future__ import annotations

from bs4 import Tag

from jobscraper.core.models import DEFAULT_LOCATION, JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text, with_query

RESULTS_PER_PAGE = 10

DATE_POSTED_MAP = {"24h": "1", "7d": "7", "14d": "14", "30d": "30"}
CONTRACT_TYPE_MAP = {
    "permanent": "permanent",
    "contract": "contract",
    "temporary": "temporary",
    "part-time": "parttime",
}


class IndeedAdapter(SiteAdapter):
    name = "indeed"
    base_url = "https://uk.indeed.com"
    listing_selector = "div.job_seen_beacon, div.jobsearch-ResultsList > div, .resultContent"

    TITLE = "h2.jobTitle a, a.jcs-JobTitle, [data-jk] a"

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        params = {"q": spec.keywords, "l": spec.location or DEFAULT_LOCATION}
        if page > 1:
            params["start"] = str((page - 1) * RESULTS_PER_PAGE)
        if spec.date_posted in DATE_POSTED_MAP:
            params["fromage"] = DATE_POSTED_MAP[spec.date_posted]
        if spec.contract_type in CONTRACT_TYPE_MAP:
            params["jt"] = CONTRACT_TYPE_MAP[spec.contract_type]
        if spec.salary_min > 0:
            params["salary"] = str(spec.salary_min)
        if spec.radius_miles > 0:
            params["radius"] = str(spec.radius_miles)
        return with_query(f"{self.base_url}/jobs", params)

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        return self.make_record(
            spec,
            scraped_at,
            title=first_text(element, self.TITLE),
            href=first_attr(element, self.TITLE, "href"),
            company=first_text(element, '[data-testid="company-name"], .companyName, .company'),
            location=first_text(element, '[data-testid="text-location"], .companyLocation, .location'),
            salary=first_text(
                element, '.salary-snippet-container, .salaryText, [data-testid="attribute_snippet_testid"]'
            ),
            posted_date=first_text(element, '.date, [data-testid="myJobsStateDate"]'),
            description=first_text(element, ".job-snippet, .jobCardShelfContainer, .underShelfFooter"),
        )
