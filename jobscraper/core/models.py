from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from jobscraper.core.errors import InvalidSpecification

JOB_SITES = ("indeed", "reed", "totaljobs", "cvlibrary", "linkedin", "glassdoor")

SITE_LABELS = {
    "indeed": "Indeed UK",
    "reed": "Reed",
    "totaljobs": "Totaljobs",
    "cvlibrary": "CV-Library",
    "linkedin": "LinkedIn",
    "glassdoor": "Glassdoor",
}

CONTRACT_TYPES = ("all", "permanent", "contract", "temporary", "part-time")
WORK_MODES = ("all", "remote", "hybrid", "onsite")
DATE_POSTED_OPTIONS = ("all", "24h", "7d", "14d", "30d")
OUTCOME_STATUSES = ("success", "failed", "blocked", "partial")

DEFAULT_LOCATION = "United Kingdom"
DEFAULT_SITES = ("indeed", "reed", "totaljobs", "cvlibrary")
DEFAULT_CRON = "0 9 * * *"


def now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(frozen=True, slots=True)
class SearchSpecification:
    name: str
    keywords: str
    location: str = DEFAULT_LOCATION
    radius_miles: int = 0
    salary_min: int = 0
    salary_max: int = 0
    contract_type: str = "all"
    work_mode: str = "all"
    date_posted: str = "all"
    sites: tuple[str, ...] = DEFAULT_SITES
    is_active: bool = True
    id: int | None = None
    created_at: str = ""
    updated_at: str = ""

    def validate(self) -> None:
        if not self.keywords or not self.keywords.strip():
            raise InvalidSpecification("keywords must not be empty")
        if self.radius_miles < 0:
            raise InvalidSpecification(f"radius must be >= 0, got {self.radius_miles}")
        if self.salary_min < 0 or self.salary_max < 0:
            raise InvalidSpecification("salary bounds must be >= 0")
        if self.salary_min and self.salary_max and self.salary_max < self.salary_min:
            raise InvalidSpecification(f"salary ceiling {self.salary_max} is below floor {self.salary_min}")
        if self.contract_type not in CONTRACT_TYPES:
            raise InvalidSpecification(f"unknown contract type: {self.contract_type}")
        if self.work_mode not in WORK_MODES:
            raise InvalidSpecification(f"unknown work mode: {self.work_mode}")
        if self.date_posted not in DATE_POSTED_OPTIONS:
            raise InvalidSpecification(f"unknown date posted bucket: {self.date_posted}")

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> SearchSpecification:
        sites = payload.get("sites", DEFAULT_SITES)
        if isinstance(sites, str):
            sites = _parse_sites(sites)
        return cls(
            id=payload.get("id"),
            name=payload.get("name") or payload.get("keywords", ""),
            keywords=payload.get("keywords", ""),
            location=payload.get("location") or DEFAULT_LOCATION,
            radius_miles=int(payload.get("radius_miles", 0) or 0),
            salary_min=int(payload.get("salary_min", 0) or 0),
            salary_max=int(payload.get("salary_max", 0) or 0),
            contract_type=payload.get("contract_type") or "all",
            work_mode=payload.get("work_mode") or "all",
            date_posted=payload.get("date_posted") or "all",
            sites=tuple(sites),
            is_active=bool(payload.get("is_active", True)),
            created_at=payload.get("created_at") or "",
            updated_at=payload.get("updated_at") or "",
        )


@dataclass(slots=True)
class JobRecord:
    title: str
    company: str
    location: str
    salary: str
    posted_date: str
    description: str
    url: str
    source: str
    contract_type: str
    work_mode: str
    scraped_at: str
    specification_id: int | None = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return self.url, self.source


@dataclass(slots=True)
class InsertResult:
    inserted: bool
    job_id: int | None = None


@dataclass(slots=True)
class ScrapeOutcome:
    site: str
    status: str
    jobs_found: int = 0
    new_jobs: int = 0
    error: str | None = None
    duration_ms: int = 0

    def __post_init__(self) -> None:
        if self.status not in OUTCOME_STATUSES:
            raise ValueError(f"unknown outcome status: {self.status}")


@dataclass(slots=True)
class ProgressEvent:
    current_site: str
    sites_completed: int
    total_sites: int
    jobs_found: int
    status: str


@dataclass(slots=True)
class ScrapeSummary:
    outcomes: list[ScrapeOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total_found(self) -> int:
        return sum(outcome.jobs_found for outcome in self.outcomes)

    @property
    def total_new(self) -> int:
        return sum(outcome.new_jobs for outcome in self.outcomes)


@dataclass(slots=True)
class ScheduleBinding:
    specification_id: int
    cron_expression: str = DEFAULT_CRON
    enabled: bool = False
    last_run: str | None = None
    next_run: str | None = None
    id: int | None = None


def _parse_sites(raw: str) -> list[str]:
    # Stored rows hold a JSON array; hand-written config may name a single site.
    text = raw.strip()
    if not text.startswith("["):
        return [text] if text else []
    try:
        sites = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidSpecification(f"sites is not a valid list: {raw!r}") from exc
    if not isinstance(sites, list) or not all(isinstance(site, str) for site in sites):
        raise InvalidSpecification(f"sites must be a list of site names: {raw!r}")
    return sites
