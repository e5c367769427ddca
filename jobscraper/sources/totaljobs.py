from __future__ import annotations

from bs4 import Tag

from jobscraper.core.models import JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text, has_location_filter, with_query

DATE_POSTED_MAP = {"24h": "1", "7d": "7", "14d": "14", "30d": "30"}


class TotaljobsAdapter(SiteAdapter):
    name = "totaljobs"
    base_url = "https://www.totaljobs.com"
    listing_selector = '[data-testid="job-card"], .res-card, article.job-card'

    TITLE = 'h2 a, .res-card-header a, [data-testid="job-card-title"]'

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        params = {"keywords": spec.keywords}
        if has_location_filter(spec):
            params["location"] = spec.location
        if page > 1:
            params["page"] = str(page)
        if spec.salary_min > 0:
            params["salaryFrom"] = str(spec.salary_min)
        if spec.salary_max > 0:
            params["salaryTo"] = str(spec.salary_max)
        if spec.date_posted in DATE_POSTED_MAP:
            params["postedWithin"] = DATE_POSTED_MAP[spec.date_posted]
        if spec.radius_miles > 0:
            params["radius"] = str(spec.radius_miles)
        return with_query(f"{self.base_url}/jobs/in-uk", params)

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        return self.make_record(
            spec,
            scraped_at,
            title=first_text(element, self.TITLE),
            href=first_attr(element, self.TITLE, "href"),
            company=first_text(element, '.res-card-company-name, [data-testid="job-card-company"]'),
            location=first_text(element, '.res-card-location, [data-testid="job-card-location"]'),
            salary=first_text(element, '.res-card-salary, [data-testid="job-card-salary"]'),
            posted_date=first_text(element, '.res-card-posted-date, [data-testid="job-card-date"]'),
            description=first_text(element, '.res-card-description, [data-testid="job-card-description"]'),
        )
