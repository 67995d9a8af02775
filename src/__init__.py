"""
Comparable Scraper - Core Package

This package contains the scrape pipeline: source adapters, normalization,
deduplication, persistence and job lifecycle management.
"""

__version__ = "0.1.0"
