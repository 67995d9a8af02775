"""
Pipelines Package

Scrape orchestration: fallback agent, deduplication and the job runner.
"""
from src.compscraper.pipelines.deduplication import ComparableDeduplicator, dedupe
from src.compscraper.pipelines.scrape_agent import AgentResult, ScrapeAgent

__all__ = ["ComparableDeduplicator", "dedupe", "AgentResult", "ScrapeAgent"]
