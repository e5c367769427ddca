from __future__ import annotations

from urllib.parse import quote

from bs4 import Tag

from jobscraper.core.models import JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text, has_location_filter, with_query

DATE_POSTED_MAP = {"24h": "Today", "7d": "LastWeek", "14d": "Last2Weeks", "30d": "LastMonth"}
CONTRACT_TYPE_MAP = {
    "permanent": "permanent",
    "contract": "contract",
    "temporary": "temporary",
    "part-time": "part-time",
}


def path_slug(text: str) -> str:
    return quote(text.strip(), safe="-_.!~*'()").replace("%20", "-")


class ReedAdapter(SiteAdapter):
    name = "reed"
    base_url = "https://www.reed.co.uk"
    listing_selector = 'article.job-card_jobCard, .job-result-card, [data-qa="job-card"]'

    TITLE = 'h2 a, .job-card_jobResultHeading a, a[data-qa="job-card-title"]'

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        url = f"{self.base_url}/jobs/{path_slug(spec.keywords)}-jobs"
        if has_location_filter(spec):
            url += f"-in-{path_slug(spec.location)}"

        params: dict[str, str] = {}
        if page > 1:
            params["pageno"] = str(page)
        if spec.salary_min > 0:
            params["salaryfrom"] = str(spec.salary_min)
        if spec.salary_max > 0:
            params["salaryto"] = str(spec.salary_max)
        if spec.date_posted in DATE_POSTED_MAP:
            params["dateCreatedOffSet"] = DATE_POSTED_MAP[spec.date_posted]
        if spec.contract_type in CONTRACT_TYPE_MAP:
            params["employment"] = CONTRACT_TYPE_MAP[spec.contract_type]
        if spec.radius_miles > 0:
            params["proximity"] = str(spec.radius_miles)
        return with_query(url, params)

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        return self.make_record(
            spec,
            scraped_at,
            title=first_text(element, self.TITLE),
            href=first_attr(element, self.TITLE, "href"),
            company=first_text(element, '.job-card_jobResultCompany, [data-qa="job-card-company"]'),
            location=first_text(element, '.job-card_jobResultLocation, [data-qa="job-card-location"]'),
            salary=first_text(element, '.job-card_jobResultSalary, [data-qa="job-card-salary"]'),
            posted_date=first_text(element, '.job-card_jobResultPosted, [data-qa="job-card-posted-date"]'),
            description=first_text(element, '.job-card_jobResultDescription, [data-qa="job-card-description"]'),
        )
