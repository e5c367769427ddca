from __future__ import annotations

from collections.abc import Iterable

from jobscraper.core.errors import AdapterUnavailable
from jobscraper.sources.base import SiteAdapter
from jobscraper.sources.cvlibrary import CVLibraryAdapter
from jobscraper.sources.glassdoor import GlassdoorAdapter
from jobscraper.sources.indeed import IndeedAdapter
from jobscraper.sources.linkedin import LinkedInAdapter
from jobscraper.sources.reed import ReedAdapter
from jobscraper.sources.totaljobs import TotaljobsAdapter


class AdapterRegistry:
    def __init__(self, adapters: Iterable[SiteAdapter]) -> None:
        self._adapters: dict[str, SiteAdapter] = {}
        for adapter in adapters:
            if adapter.name in self._adapters:
                raise ValueError(f"Duplicate adapter for site '{adapter.name}'")
            self._adapters[adapter.name] = adapter

    def get(self, site: str) -> SiteAdapter:
        try:
            return self._adapters[site]
        except KeyError:
            raise AdapterUnavailable(f"adapter not available for site '{site}'") from None

    def __contains__(self, site: object) -> bool:
        return site in self._adapters

    @property
    def sites(self) -> list[str]:
        return list(self._adapters)


def default_registry() -> AdapterRegistry:
    return AdapterRegistry(
        [
            IndeedAdapter(),
            ReedAdapter(),
            TotaljobsAdapter(),
            CVLibraryAdapter(),
            LinkedInAdapter(),
            GlassdoorAdapter(),
        ]
    )
