"""
ETL Package

Load operations moving normalized comparables into the database.
"""
from src.compscraper.etl.loaders import ComparableLoader

__all__ = ["ComparableLoader"]
