"""
Firecrawl Extraction Adapter

Primary source: submits listing pages to the Firecrawl scrape API with an
LLM extraction schema and turns the extracted properties into raw records.
"""
import time
from typing import Any, Dict, List, Optional

import requests

from config.settings import settings
from src.compscraper.exceptions import (
    AdapterConfigurationError,
    AdapterError,
    MalformedResponseError,
)
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.models.records import RawRecord
from src.compscraper.scrapers.base import (
    AdapterResult,
    HttpSourceAdapter,
    SourceTier,
    build_listing_urls,
)
from src.compscraper.utils.logger import get_logger
from src.compscraper.utils.retry import retry_call

logger = get_logger(__name__)

EXTRACTION_SCHEMA = {
    "type": "object",
    "properties": {
        "properties": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "address": {"type": "string"},
                    "city": {"type": "string"},
                    "state": {"type": "string"},
                    "zip": {"type": "string"},
                    "units": {"type": "number"},
                    "yearBuilt": {"type": "number"},
                    "rent": {"type": "string"},
                    "rentPsf": {"type": "string"},
                    "occupancy": {"type": "string"},
                    "concession": {"type": "string"},
                    "amenities": {"type": "array", "items": {"type": "string"}},
                    "description": {"type": "string"},
                },
            },
        }
    },
}


class FirecrawlAdapter(HttpSourceAdapter):
    """
    Primary extraction source backed by the Firecrawl API.

    Each target URL is scraped with bounded retries; a URL that still fails
    becomes a caveat. The adapter only fails as a whole when every URL fails.
    """

    name = "firecrawl"
    tier = SourceTier.PRIMARY

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_urls: Optional[int] = None,
        seed_urls: Optional[List[str]] = None,
        interval_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        sleep=time.sleep,
    ):
        """
        Initialize the Firecrawl adapter.

        Args:
            api_key: Override the configured API key (for testing)
            base_url: Override the API base URL
            max_urls: Cap on target URLs per query to control cost
            seed_urls: Explicit seed URLs
            interval_seconds: Fixed delay between outbound calls
            session: requests session (for testing)
            timeout: Bounded wait applied by the scrape agent
            sleep: Sleep function used for rate limiting and backoff
        """
        super().__init__(timeout=timeout, session=session)
        self.api_key = api_key if api_key is not None else settings.firecrawl_api_key
        self.base_url = (base_url or settings.firecrawl_base_url).rstrip('/')
        self.max_urls = max_urls if max_urls is not None else settings.firecrawl_max_urls
        self.seed_urls = seed_urls
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.scraper_interval_seconds
        )
        self.sleep = sleep
        logger.info("firecrawl_adapter_initialized", base_url=self.base_url, max_urls=self.max_urls)

    def search(self, query: ScrapeQuery) -> AdapterResult:
        if not self.api_key:
            raise AdapterConfigurationError(self.name, "FIRECRAWL_API_KEY not configured")

        target_urls = build_listing_urls(query, self.seed_urls)[:self.max_urls]
        if not target_urls:
            raise AdapterConfigurationError(
                self.name, f"no target URLs for address '{query.address}'"
            )

        logger.info("firecrawl_search_started", urls=len(target_urls), address=query.address)

        result = AdapterResult()
        failures = 0
        for idx, url in enumerate(target_urls):
            if idx:
                self.sleep(self.interval_seconds)
            try:
                payload = retry_call(self._scrape_url, url, query, sleep=self.sleep)
                records = self._parse_response(payload, url)
            except AdapterError as e:
                failures += 1
                result.caveats.append(f"{self.name} could not extract {url}: {e}")
                logger.warning("firecrawl_url_failed", url=url, error=str(e), error_type=type(e).__name__)
                continue
            result.records.extend(records)

        if failures == len(target_urls):
            raise AdapterError(self.name, f"all {failures} target URLs failed")

        logger.info(
            "firecrawl_search_complete",
            records=len(result.records),
            failed_urls=failures,
        )
        return result

    def _scrape_url(self, url: str, query: ScrapeQuery) -> Dict[str, Any]:
        """
        Call the scrape endpoint for one URL.

        Returns:
            Decoded JSON payload
        """
        response = self._request(
            'POST',
            f"{self.base_url}/scrape",
            json=self._build_request(url, query),
            headers={'Authorization': f"Bearer {self.api_key}"},
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(self.name, f"invalid JSON from {url}") from e

        if not isinstance(payload, dict):
            raise MalformedResponseError(self.name, f"unexpected payload type {type(payload).__name__}")
        if payload.get('success') is False:
            raise MalformedResponseError(self.name, str(payload.get('error') or 'extraction failed'))
        return payload

    @staticmethod
    def _build_request(url: str, query: ScrapeQuery) -> Dict[str, Any]:
        focus = []
        if query.amenities:
            focus.append(f"amenities of interest: {', '.join(query.amenities)}")
        if query.keywords:
            focus.append(f"keywords: {', '.join(query.keywords)}")

        prompt = (
            f"Extract {query.asset_type} rental properties within {query.radius_mi:g} miles of "
            f"{query.address}. For each property return name, address, unit count, year built, "
            "rent per unit, rent per square foot, occupancy, concessions and amenities."
        )
        if focus:
            prompt += " Pay attention to " + "; ".join(focus) + "."

        return {
            'url': url,
            'formats': ['extract'],
            'extract': {'schema': EXTRACTION_SCHEMA, 'prompt': prompt},
            'onlyMainContent': True,
        }

    def _parse_response(self, payload: Dict[str, Any], source_url: str) -> List[RawRecord]:
        """
        Parse extracted properties into raw records.

        Args:
            payload: Decoded scrape response
            source_url: Page the properties were extracted from

        Returns:
            List of raw records
        """
        if not isinstance(payload, dict):
            raise MalformedResponseError(self.name, "response body is not an object")
        data = payload.get('data') or {}
        if not isinstance(data, dict):
            raise MalformedResponseError(self.name, "response data is not an object")
        extracted = data.get('extract') or data.get('llm_extraction') or {}
        items = extracted.get('properties') if isinstance(extracted, dict) else None
        if items is None:
            return []
        if not isinstance(items, list):
            raise MalformedResponseError(self.name, "extract.properties is not a list")

        records = []
        for item in items:
            if not isinstance(item, dict):
                continue
            record = RawRecord.model_validate(item)
            records.append(record.model_copy(update={
                'source': self.name,
                'source_url': record.source_url or source_url,
            }))

        logger.debug("firecrawl_response_parsed", url=source_url, records=len(records))
        return records
