"""
Source Adapter Interface

Every data source implements the same capability: given a query, return zero
or more raw property records plus caveats, or raise an AdapterError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import requests

from config.settings import settings
from src.compscraper.exceptions import (
    MalformedResponseError,
    QuotaExceededError,
    TransientAdapterError,
)
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.models.records import RawRecord


class SourceTier(str, Enum):
    """Quality tier of a source, in fallback priority order."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    HEURISTIC = "heuristic"


@dataclass
class AdapterResult:
    """Records and non-fatal caveats returned by one adapter call."""

    records: List[RawRecord] = field(default_factory=list)
    caveats: List[str] = field(default_factory=list)


class SourceAdapter(ABC):
    """
    Base class for source adapters.

    Subclasses set ``name`` and ``tier`` and implement :meth:`search`. They
    must not mutate the query. ``timeout`` bounds how long the scrape agent
    waits for one :meth:`search` call.
    """

    name: str = "adapter"
    tier: SourceTier = SourceTier.PRIMARY

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.adapter_timeout_seconds

    @abstractmethod
    def search(self, query: ScrapeQuery) -> AdapterResult:
        """
        Fetch raw comparable records for a query.

        Raises:
            AdapterError: When the source cannot produce results
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name}, tier={self.tier.value})>"


class HttpSourceAdapter(SourceAdapter):
    """
    Adapter backed by HTTP calls through a shared requests session.

    Maps transport failures and status codes onto the adapter error taxonomy
    so the retry helper can tell transient from permanent failures.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        http_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout=timeout)
        self.http_timeout = http_timeout if http_timeout is not None else settings.http_timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': settings.scraper_user_agent,
            'Accept-Language': 'en-US,en;q=0.9',
        })

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Issue a request and classify failures.

        Raises:
            TransientAdapterError: Connection errors, timeouts, 429 and 5xx
            QuotaExceededError: 401, 402 and 403
            MalformedResponseError: Any other non-2xx status
        """
        kwargs.setdefault('timeout', self.http_timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise TransientAdapterError(self.name, f"{type(e).__name__}: {e}") from e

        status = response.status_code
        if status in (401, 402, 403):
            raise QuotaExceededError(self.name, f"HTTP {status} from {url}")
        if status == 429 or status >= 500:
            raise TransientAdapterError(self.name, f"HTTP {status} from {url}")
        if status >= 400:
            raise MalformedResponseError(self.name, f"HTTP {status} from {url}")
        return response


LISTING_SITE_TEMPLATES = [
    "https://www.apartments.com/{city}-{state}/",
    "https://www.apartmentlist.com/{state}/{city}/",
    "https://www.rentals.com/{city}-{state}/",
    "https://www.rent.com/{city}-{state}/apartments/",
]


def build_listing_urls(query: ScrapeQuery, seed_urls: Optional[List[str]] = None) -> List[str]:
    """
    Listing pages to search for a query.

    Configured seed URLs come first, followed by city listing pages derived
    from the query's locality.

    Args:
        query: Scrape query
        seed_urls: Explicit seed URLs (defaults to settings)

    Returns:
        Ordered, deduplicated list of http(s) URLs
    """
    if seed_urls is None:
        seed_urls = settings.seed_urls

    urls: List[str] = [url for url in seed_urls if url.startswith(('http://', 'https://'))]

    locality = query.locality()
    if locality.city and locality.state:
        city_slug = '-'.join(locality.city.lower().split())
        state_slug = locality.state.lower()
        urls.extend(
            template.format(city=city_slug, state=state_slug)
            for template in LISTING_SITE_TEMPLATES
        )

    seen = set()
    ordered = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered
