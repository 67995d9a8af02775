"""
Scrapers Package

Source adapters for comparable property data, in fallback priority order:
Firecrawl extraction, direct listing crawl, heuristic market profiles.
"""
from typing import List

from .base import AdapterResult, SourceAdapter, SourceTier
from .firecrawl_adapter import FirecrawlAdapter
from .heuristic_generator import HeuristicAdapter
from .listing_crawler import ListingCrawlerAdapter


def build_default_adapters(config=None) -> List[SourceAdapter]:
    """
    Default adapter chain for the scrape agent.

    Args:
        config: Settings instance (defaults to the global settings)

    Returns:
        [primary, secondary, heuristic] adapters
    """
    if config is None:
        from config.settings import settings as config

    return [
        FirecrawlAdapter(
            api_key=config.firecrawl_api_key,
            base_url=config.firecrawl_base_url,
            max_urls=config.firecrawl_max_urls,
            seed_urls=config.seed_urls,
            interval_seconds=config.scraper_interval_seconds,
            timeout=config.adapter_timeout_seconds,
        ),
        ListingCrawlerAdapter(
            seed_urls=config.seed_urls,
            interval_seconds=config.scraper_interval_seconds,
            timeout=config.adapter_timeout_seconds,
        ),
        HeuristicAdapter(
            records_per_query=config.heuristic_records_per_query,
            timeout=config.adapter_timeout_seconds,
        ),
    ]


__all__ = [
    "AdapterResult",
    "SourceAdapter",
    "SourceTier",
    "FirecrawlAdapter",
    "ListingCrawlerAdapter",
    "HeuristicAdapter",
    "build_default_adapters",
]
