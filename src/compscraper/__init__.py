"""
Comparable-Property Scraper

Turns a location query into a deduplicated set of comparable-property records
persisted to the comparables store.
"""
