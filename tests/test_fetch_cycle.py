from __future__ import annotations

import httpx
import pytest
from bs4 import Tag

from jobscraper.collectors.fetch_cycle import FetchCycle, is_blocked
from jobscraper.collectors.page_fetcher import FetchResponse, PageFetcher
from jobscraper.core.cancellation import CancellationToken
from jobscraper.core.errors import BlockedError, ScrapeCancelled, TransientFetchError
from jobscraper.core.models import JobRecord, SearchSpecification
from jobscraper.sources.base import SiteAdapter, first_attr, first_text
from jobscraper.utils.throttle import RateLimiter


class ListAdapter(SiteAdapter):
    name = "fake"
    base_url = "https://jobs.example"
    listing_selector = "li.job"

    def build_query_url(self, spec: SearchSpecification, page: int) -> str:
        return f"{self.base_url}/search?page={page}"

    def parse_listing(self, element: Tag, spec: SearchSpecification, scraped_at: str) -> JobRecord:
        return self.make_record(spec, scraped_at, title=first_text(element, "a"), href=first_attr(element, "a", "href"))


class ScriptedFetcher:
    def __init__(self, script: dict[int, list[object]], default: object = "") -> None:
        self.script = script
        self.default = default
        self.calls: list[str] = []

    def fetch(self, url: str, token: CancellationToken | None = None) -> FetchResponse:
        self.calls.append(url)
        page = int(url.rsplit("=", 1)[1])
        queue = self.script.get(page, [])
        result = queue.pop(0) if queue else self.default
        if isinstance(result, Exception):
            raise result
        return FetchResponse(status_code=200, text=str(result), url=url)


def page_html(page: int, count: int) -> str:
    items = "".join(f'<li class="job"><a href="/job/{page}-{i}">Job {page}-{i}</a></li>' for i in range(count))
    return f"<ul>{items}</ul>"


def make_cycle(fetcher: ScriptedFetcher, max_retries: int = 2) -> tuple[FetchCycle, RateLimiter, list[float]]:
    sleeps: list[float] = []
    limiter = RateLimiter(base_delay=0, max_retries=max_retries, jitter=0, sleep=lambda s: None)
    return FetchCycle(fetcher, limiter, sleep=sleeps.append), limiter, sleeps


SPEC = SearchSpecification(name="fake", keywords="python", sites=("fake",))


def test_stops_on_first_empty_page() -> None:
    fetcher = ScriptedFetcher({1: [page_html(1, 10)], 2: [page_html(2, 4)]})
    cycle, limiter, _ = make_cycle(fetcher)
    progress: list[int] = []

    run = cycle.run(ListAdapter(), SPEC, CancellationToken(), on_progress=progress.append)

    assert run.outcome.status == "success"
    assert run.outcome.jobs_found == 14
    assert run.outcome.error is None
    assert len(run.records) == 14
    assert progress == [10, 14]
    assert [url.rsplit("=", 1)[1] for url in fetcher.calls] == ["1", "2", "3"]
    assert limiter.request_count("jobs.example") == 3


def test_page_ceiling_is_a_success() -> None:
    fetcher = ScriptedFetcher({page: [page_html(page, 3)] for page in range(1, 10)})
    cycle, _, _ = make_cycle(fetcher)

    run = cycle.run(ListAdapter(), SPEC, CancellationToken())

    assert run.outcome.status == "success"
    assert run.outcome.jobs_found == 15
    assert len(fetcher.calls) == 5


def test_transient_errors_are_retried_with_backoff() -> None:
    fetcher = ScriptedFetcher({1: [TransientFetchError("HTTP 502"), TransientFetchError("HTTP 503"), page_html(1, 2)]})
    cycle, limiter, sleeps = make_cycle(fetcher, max_retries=2)

    run = cycle.run(ListAdapter(), SPEC, CancellationToken())

    assert run.outcome.status == "success"
    assert run.outcome.jobs_found == 2
    assert len(sleeps) == 2
    assert limiter.request_count("jobs.example") == 4


def test_exhausted_retries_mark_the_site_failed() -> None:
    fetcher = ScriptedFetcher({}, default=TransientFetchError("HTTP 500: Internal Server Error", status_code=500))
    cycle, _, sleeps = make_cycle(fetcher, max_retries=2)

    run = cycle.run(ListAdapter(), SPEC, CancellationToken())

    assert run.outcome.status == "failed"
    assert run.outcome.error == "HTTP 500: Internal Server Error"
    assert len(fetcher.calls) == 3
    assert len(sleeps) == 2


def test_blocked_response_is_not_retried() -> None:
    fetcher = ScriptedFetcher({1: [page_html(1, 5)]}, default=BlockedError("HTTP 429: Too Many Requests (blocked)", 429))
    cycle, _, sleeps = make_cycle(fetcher, max_retries=3)

    run = cycle.run(ListAdapter(), SPEC, CancellationToken())

    assert run.outcome.status == "blocked"
    assert run.outcome.jobs_found == 5
    assert "429" in run.outcome.error
    assert len(fetcher.calls) == 2
    assert sleeps == []


def test_cancelled_token_returns_partial_without_fetching() -> None:
    fetcher = ScriptedFetcher({1: [page_html(1, 5)]})
    cycle, _, _ = make_cycle(fetcher)
    token = CancellationToken()
    token.cancel()

    run = cycle.run(ListAdapter(), SPEC, token)

    assert run.outcome.status == "partial"
    assert run.outcome.error
    assert fetcher.calls == []


def test_cancellation_mid_run_keeps_parsed_records() -> None:
    token = CancellationToken()
    fetcher = ScriptedFetcher({1: [page_html(1, 4)], 2: [page_html(2, 4)]})
    cycle, _, _ = make_cycle(fetcher)

    run = cycle.run(ListAdapter(), SPEC, token, on_progress=lambda count: token.cancel())

    assert run.outcome.status == "partial"
    assert run.outcome.jobs_found == 4
    assert len(fetcher.calls) == 1


def test_rate_limited_site_is_blocked_once_retries_run_out() -> None:
    fetcher = ScriptedFetcher({}, default=TransientFetchError("HTTP 429: Too Many Requests", status_code=429))
    cycle, _, sleeps = make_cycle(fetcher, max_retries=2)

    run = cycle.run(ListAdapter(), SPEC, CancellationToken())

    assert run.outcome.status == "blocked"
    assert run.outcome.error == "HTTP 429: Too Many Requests"
    assert len(fetcher.calls) == 3
    assert len(sleeps) == 2


def test_malformed_listing_does_not_fail_the_site() -> None:
    broken = '<li class="job"><a href="//[broken">Broken</a></li>'
    first_page = page_html(1, 3).replace("<ul>", f"<ul>{broken}")
    fetcher = ScriptedFetcher({1: [first_page], 2: [page_html(2, 2)]})
    cycle, _, _ = make_cycle(fetcher)

    run = cycle.run(ListAdapter(), SPEC, CancellationToken())

    assert run.outcome.status == "success"
    assert run.outcome.jobs_found == 5
    assert run.outcome.error is None
    assert len(fetcher.calls) == 3


@pytest.mark.parametrize(
    ("exc", "blocked"),
    [
        (BlockedError("HTTP 403"), True),
        (TransientFetchError("bad gateway", status_code=429), True),
        (TransientFetchError("request blocked by upstream"), True),
        (TransientFetchError("HTTP 500", status_code=500), False),
        (TransientFetchError("ConnectError: connection refused"), False),
    ],
)
def test_block_classification(exc: Exception, blocked: bool) -> None:
    assert is_blocked(exc) is blocked


def fetcher_for(handler) -> PageFetcher:
    return PageFetcher(transport=httpx.MockTransport(handler))


def test_page_fetcher_returns_body_with_browser_headers() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, text="<html>ok</html>")

    response = fetcher_for(handler).fetch("https://uk.indeed.com/jobs?q=python")

    assert response.status_code == 200
    assert response.text == "<html>ok</html>"
    assert seen["user-agent"].startswith("Mozilla/5.0")
    assert seen["accept-language"] == "en-GB,en;q=0.9"


@pytest.mark.parametrize("status", [403, 429])
def test_page_fetcher_raises_blocked_for_anti_bot_statuses(status: int) -> None:
    fetcher = fetcher_for(lambda request: httpx.Response(status))
    with pytest.raises(BlockedError) as excinfo:
        fetcher.fetch("https://www.reed.co.uk/jobs/python-jobs")
    assert excinfo.value.status_code == status


def test_page_fetcher_detects_challenge_pages() -> None:
    body = '<html><script src="/cdn-cgi/challenge-platform/h/b/orchestrate"></script></html>'
    fetcher = fetcher_for(lambda request: httpx.Response(200, text=body))
    with pytest.raises(BlockedError):
        fetcher.fetch("https://www.glassdoor.co.uk/Job/jobs.htm")


def test_page_fetcher_raises_transient_for_server_errors() -> None:
    fetcher = fetcher_for(lambda request: httpx.Response(503))
    with pytest.raises(TransientFetchError) as excinfo:
        fetcher.fetch("https://www.totaljobs.com/jobs/in-uk")
    assert not isinstance(excinfo.value, BlockedError)
    assert excinfo.value.status_code == 503


def test_page_fetcher_wraps_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientFetchError, match="ConnectError"):
        fetcher_for(handler).fetch("https://www.cv-library.co.uk/search-jobs")


def test_page_fetcher_refuses_to_start_after_cancellation() -> None:
    calls: list[httpx.Request] = []
    fetcher = fetcher_for(lambda request: calls.append(request) or httpx.Response(200))
    token = CancellationToken()
    token.cancel()
    with pytest.raises(ScrapeCancelled):
        fetcher.fetch("https://www.linkedin.com/jobs/search", token)
    assert calls == []
