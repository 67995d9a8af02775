"""
Unit tests for the adapter base classes and listing URL builder
"""
from unittest.mock import Mock

import pytest
import requests

from config.settings import Settings
from src.compscraper.exceptions import (
    MalformedResponseError,
    QuotaExceededError,
    TransientAdapterError,
)
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.scrapers import (
    FirecrawlAdapter,
    HeuristicAdapter,
    ListingCrawlerAdapter,
    SourceTier,
    build_default_adapters,
)
from src.compscraper.scrapers.base import build_listing_urls


class TestBuildListingUrls:
    """Tests for build_listing_urls"""

    def test_seed_urls_then_city_pages(self):
        """Test seeds come first, followed by city listing pages"""
        query = ScrapeQuery(address="123 Main St, Nashville, TN")
        urls = build_listing_urls(query, ["https://seed.example/x", "ftp://bad", "https://seed.example/x"])

        assert urls[0] == "https://seed.example/x"
        assert "https://www.apartments.com/nashville-tn/" in urls
        assert len(urls) == 5
        assert len(set(urls)) == len(urls)

    def test_multi_word_city_slug(self):
        """Test city names are slugged"""
        query = ScrapeQuery(address="1 Alamo Plaza, San Antonio, TX")
        assert "https://www.rentals.com/san-antonio-tx/" in build_listing_urls(query, [])

    def test_no_locality_and_no_seeds(self):
        """Test nothing to crawl without seeds or a city"""
        assert build_listing_urls(ScrapeQuery(address="123 Main St"), []) == []


class TestHttpRequestErrors:
    """Tests for HTTP failure classification"""

    def _adapter(self, session):
        return ListingCrawlerAdapter(seed_urls=[], session=session, sleep=Mock())

    @pytest.mark.parametrize("status,error", [
        (500, TransientAdapterError),
        (503, TransientAdapterError),
        (429, TransientAdapterError),
        (401, QuotaExceededError),
        (402, QuotaExceededError),
        (403, QuotaExceededError),
        (404, MalformedResponseError),
    ])
    def test_status_codes(self, status, error):
        """Test non-2xx statuses map onto the adapter error types"""
        session = Mock()
        session.request.return_value = Mock(status_code=status)

        with pytest.raises(error) as exc_info:
            self._adapter(session)._request('GET', 'https://example.com')

        assert exc_info.value.adapter == "listing_crawler"
        assert str(status) in str(exc_info.value)

    def test_connection_errors_are_transient(self):
        """Test transport failures are retryable"""
        session = Mock()
        session.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(TransientAdapterError):
            self._adapter(session)._request('GET', 'https://example.com')

    def test_success_returns_response(self):
        """Test 2xx responses pass through with the default timeout"""
        session = Mock()
        response = Mock(status_code=200)
        session.request.return_value = response

        adapter = self._adapter(session)
        assert adapter._request('GET', 'https://example.com') is response
        assert session.request.call_args.kwargs['timeout'] == adapter.http_timeout


class TestBuildDefaultAdapters:
    """Tests for build_default_adapters"""

    def test_adapter_chain_order(self):
        """Test the chain runs primary, secondary, then heuristic"""
        config = Settings(
            firecrawl_api_key="fc-test",
            scraper_seed_urls="https://a.example/list, https://b.example/list",
            adapter_timeout_seconds=12,
        )

        adapters = build_default_adapters(config)

        assert [type(a) for a in adapters] == [FirecrawlAdapter, ListingCrawlerAdapter, HeuristicAdapter]
        assert [a.tier for a in adapters] == [SourceTier.PRIMARY, SourceTier.SECONDARY, SourceTier.HEURISTIC]
        assert adapters[0].api_key == "fc-test"
        assert adapters[1].seed_urls == ["https://a.example/list", "https://b.example/list"]
        assert all(a.timeout == 12 for a in adapters)
