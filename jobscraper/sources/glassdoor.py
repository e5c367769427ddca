from __future__ import annotations

from bs4 import Tag

from jobscraper.core.models import JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text, has_location_filter, with_query

DATE_POSTED_MAP = {"24h": "1", "7d": "7", "14d": "14", "30d": "30"}


class GlassdoorAdapter(SiteAdapter):
    name = "glassdoor"
    base_url = "https://www.glassdoor.co.uk"
    listing_selector = '[data-test="jobListing"], .jobCard, .react-job-listing'

    TITLE = '[data-test="job-title"], .jobCard__title a, .job-title a'

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        params = {"sc.keyword": spec.keywords}
        if has_location_filter(spec):
            params["locT"] = "C"
            params["locKeyword"] = spec.location
        if page > 1:
            params["p"] = str(page)
        if spec.date_posted in DATE_POSTED_MAP:
            params["fromAge"] = DATE_POSTED_MAP[spec.date_posted]
        return with_query(f"{self.base_url}/Job/jobs.htm", params)

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        return self.make_record(
            spec,
            scraped_at,
            title=first_text(element, self.TITLE),
            href=first_attr(element, self.TITLE, "href") or first_attr(element, "a", "href"),
            company=first_text(element, '[data-test="employer-name"], .jobCard__company, .job-employer'),
            location=first_text(element, '[data-test="emp-location"], .jobCard__location, .job-location'),
            salary=first_text(element, '[data-test="detailSalary"], .jobCard__salary, .salary-estimate'),
            posted_date=first_text(element, '[data-test="job-age"], .jobCard__date, .listing-age'),
        )
