"""
Heuristic Comparable Generator

Terminal fallback source: produces synthetic comparables from built-in market
profiles so a job still yields a usable result when every live source fails.
Output is deterministic per query, so re-running a job upserts the same rows.
"""
import hashlib
import random
from typing import Dict, List, Optional

from config.settings import settings
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.models.records import RawRecord
from src.compscraper.scrapers.base import AdapterResult, SourceAdapter, SourceTier
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

SYNTHETIC_SOURCE = "heuristic"

# Sunbelt market profiles: (name, street, zip, units, year built, rent psf, rent pu, occupancy, amenities)
MARKET_PROFILES: Dict[str, Dict] = {
    'nashville': {
        'city': 'Nashville',
        'state': 'TN',
        'properties': [
            ('The Gulch Flats', '415 Church St', '37219', 324, 2018, 2.85, 2450, 94.2,
             ['pool', 'fitness', 'rooftop', 'concierge']),
            ('Music Row Towers', '1808 Division St', '37203', 256, 2020, 3.10, 2680, 96.8,
             ['pool', 'fitness', 'parking', 'pet-friendly']),
            ('Broadway Commons', '1200 Broadway', '37203', 189, 2019, 2.95, 2590, 92.1,
             ['rooftop', 'fitness', 'coworking', 'parking']),
        ],
    },
    'atlanta': {
        'city': 'Atlanta',
        'state': 'GA',
        'properties': [
            ('Midtown Heights', '1050 Peachtree St', '30309', 412, 2017, 2.75, 2380, 95.3,
             ['pool', 'fitness', 'concierge', 'parking']),
            ('Buckhead Square', '3060 Pharr Court', '30305', 298, 2019, 3.25, 2890, 97.2,
             ['pool', 'fitness', 'rooftop', 'valet']),
            ('Beltline Lofts', '650 Glen Iris Dr', '30308', 167, 2021, 2.90, 2520, 93.7,
             ['fitness', 'coworking', 'pet-friendly', 'parking']),
        ],
    },
    'austin': {
        'city': 'Austin',
        'state': 'TX',
        'properties': [
            ('South Lamar District', '1800 S Lamar Blvd', '78704', 285, 2020, 3.15, 2750, 96.1,
             ['pool', 'fitness', 'rooftop', 'coworking']),
            ('Rainey Street Residences', '90 Rainey St', '78701', 203, 2019, 3.40, 2980, 98.5,
             ['pool', 'concierge', 'rooftop', 'valet']),
            ('East Austin Commons', '1200 E 6th St', '78702', 156, 2018, 2.95, 2580, 94.8,
             ['fitness', 'coworking', 'pet-friendly', 'parking']),
        ],
    },
    'charlotte': {
        'city': 'Charlotte',
        'state': 'NC',
        'properties': [
            ('Uptown Plaza', '500 N Tryon St', '28202', 356, 2018, 2.60, 2280, 94.7,
             ['pool', 'fitness', 'concierge', 'parking']),
            ('SouthEnd Station', '1200 S Tryon St', '28203', 289, 2020, 2.85, 2450, 96.3,
             ['pool', 'fitness', 'rooftop', 'coworking']),
        ],
    },
}

# National multifamily baselines for locations without a profile
NATIONAL_BASELINE = {
    'units': (80, 320),
    'year_built': (1985, 2022),
    'rent_psf': (1.45, 2.40),
    'avg_unit_sqft': (780, 1050),
    'occupancy': (90.0, 97.0),
}


def query_seed(query: ScrapeQuery) -> int:
    """Stable integer seed derived from the query's identifying fields."""
    key = '|'.join([
        ' '.join(query.address.lower().split()),
        query.asset_type.lower(),
        f"{query.radius_mi:g}",
    ])
    return int(hashlib.sha256(key.encode('utf-8')).hexdigest()[:16], 16)


def match_market(query: ScrapeQuery) -> Optional[str]:
    """
    Market profile key for a query, or None.

    The parsed city is checked first, then the free-text address.
    """
    city = query.locality().city
    if city and city.lower() in MARKET_PROFILES:
        return city.lower()

    address = query.address.lower()
    for market in MARKET_PROFILES:
        if market in address:
            return market
    return None


class HeuristicAdapter(SourceAdapter):
    """
    Deterministic synthetic comparable generator.

    Never raises and never performs I/O. Records carry the ``heuristic``
    source so downstream consumers can tell them apart from scraped data.
    """

    name = SYNTHETIC_SOURCE
    tier = SourceTier.HEURISTIC

    def __init__(self, records_per_query: Optional[int] = None, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.records_per_query = (
            records_per_query if records_per_query is not None else settings.heuristic_records_per_query
        )

    def search(self, query: ScrapeQuery) -> AdapterResult:
        rng = random.Random(query_seed(query))
        market = match_market(query)

        if market:
            records = self._from_profile(market, query, rng)
        else:
            records = self._from_baseline(query, rng)

        logger.info(
            "heuristic_records_generated",
            market=market or 'national',
            records=len(records),
            address=query.address,
        )
        return AdapterResult(records=records)

    def _from_profile(self, market: str, query: ScrapeQuery, rng: random.Random) -> List[RawRecord]:
        profile = MARKET_PROFILES[market]
        records = []
        for name, street, zip_code, units, year_built, rent_psf, rent_pu, occupancy, amenities in profile['properties']:
            records.append(RawRecord(
                name=name,
                address=street,
                city=profile['city'],
                state=profile['state'],
                zip_code=zip_code,
                asset_type=query.asset_type,
                units=units,
                year_built=year_built,
                rent_psf=round(rent_psf + rng.uniform(-0.15, 0.15), 2),
                rent_pu=rent_pu + rng.randint(-100, 100),
                occupancy_pct=round(min(occupancy + rng.uniform(-2.0, 2.0), 100.0), 1),
                concession_pct=round(rng.uniform(0.0, 3.0), 1),
                amenity_tags=_merge_tags(amenities, query.amenities),
                notes=f"Estimated {query.asset_type.lower()} comparable in {profile['city']}",
                source=SYNTHETIC_SOURCE,
            ))
        return records

    def _from_baseline(self, query: ScrapeQuery, rng: random.Random) -> List[RawRecord]:
        locality = query.locality()
        street = query.street_line()
        baseline = NATIONAL_BASELINE

        records = []
        for idx in range(self.records_per_query):
            units = rng.randint(*baseline['units'])
            rent_psf = round(rng.uniform(*baseline['rent_psf']), 2)
            sqft = rng.randint(*baseline['avg_unit_sqft'])
            records.append(RawRecord(
                name=f"Comparable {idx + 1} near {street}",
                address=street,
                city=locality.city,
                state=locality.state,
                zip_code=locality.zip_code,
                asset_type=query.asset_type,
                units=units,
                year_built=rng.randint(*baseline['year_built']),
                rent_psf=rent_psf,
                rent_pu=int(round(rent_psf * sqft)),
                occupancy_pct=round(rng.uniform(*baseline['occupancy']), 1),
                concession_pct=round(rng.uniform(0.0, 3.0), 1),
                amenity_tags=list(query.amenities),
                notes=f"Estimated from national {query.asset_type.lower()} baselines",
                source=SYNTHETIC_SOURCE,
            ))
        return records


def _merge_tags(base: List[str], requested: List[str]) -> List[str]:
    tags = list(base)
    for tag in requested:
        if tag.lower() not in tags:
            tags.append(tag.lower())
    return tags
