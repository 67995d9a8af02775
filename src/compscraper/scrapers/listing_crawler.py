"""
Listing Page Crawler

Secondary source: fetches public listing pages directly and extracts property
records with BeautifulSoup. Strategies applied to each page:
JSON-LD structured data and common listing-card selectors, with a text-pattern
scan as a last resort for pages where neither finds anything.
"""
import json
import re
import time
from typing import Any, Dict, Iterable, List, Optional

import requests
from bs4 import BeautifulSoup

from config.settings import settings
from src.compscraper.exceptions import AdapterConfigurationError, AdapterError
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

# schema.org types that describe a rentable property
JSONLD_PROPERTY_TYPES = {
    'apartment', 'apartmentcomplex', 'residence', 'singlefamilyresidence',
    'house', 'place', 'property', 'accommodation', 'lodgingbusiness',
}

CARD_SELECTORS = [
    '.property-item, .listing-item, .apartment-item',
    '.property-card, .listing-card, .apartment-card',
    '[data-property], [data-listing], [data-apartment]',
    '.property, .listing, .apartment, .rental',
]
NAME_SELECTORS = '.property-name, .listing-name, .property-title, .name, h2, h3'
ADDRESS_SELECTORS = '.address, .location, .property-address'
RENT_SELECTORS = '.rent, .price, .cost, .property-pricing'
AMENITY_SELECTORS = '.amenities, .features'

ADDRESS_PATTERN = re.compile(
    r"\b\d{1,6}\s+(?:[A-Za-z0-9]+\s){0,4}?"
    r"(?:St|Street|Ave|Avenue|Rd|Road|Dr|Drive|Blvd|Boulevard|Ln|Lane|Ct|Court|Pike|Way|Pkwy|Parkway)\b\.?"
)
RENT_PATTERN = re.compile(r"\$\d{1,3}(?:,\d{3})*(?:\.\d{2})?")
MAX_TEXT_MATCHES = 5


class ListingCrawlerAdapter(HttpSourceAdapter):
    """
    Direct HTML crawler over public listing pages.

    Each page is fetched with bounded retries; a page that still fails
    becomes a caveat. The adapter raises only when every page fails.
    """

    name = "listing_crawler"
    tier = SourceTier.SECONDARY

    def __init__(
        self,
        seed_urls: Optional[List[str]] = None,
        max_pages: Optional[int] = None,
        interval_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        sleep=time.sleep,
    ):
        super().__init__(timeout=timeout, session=session)
        self.seed_urls = seed_urls
        self.max_pages = max_pages
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.scraper_interval_seconds
        )
        self.sleep = sleep
        self.session.headers.update({
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        })

    def search(self, query: ScrapeQuery) -> AdapterResult:
        target_urls = build_listing_urls(query, self.seed_urls)
        if self.max_pages is not None:
            target_urls = target_urls[:self.max_pages]
        if not target_urls:
            raise AdapterConfigurationError(
                self.name,
                "no target URLs; set SCRAPER_SEED_URLS or include city and state in the address",
            )

        logger.info("listing_crawl_started", urls=len(target_urls), address=query.address)

        result = AdapterResult()
        failures = 0
        for idx, url in enumerate(target_urls):
            if idx:
                self.sleep(self.interval_seconds)
            try:
                html = retry_call(self._fetch, url, sleep=self.sleep)
            except AdapterError as e:
                failures += 1
                result.caveats.append(f"{self.name} could not fetch {url}: {e}")
                logger.warning("listing_page_failed", url=url, error=str(e), error_type=type(e).__name__)
                continue

            records = self.parse_page(html, url, query)
            logger.info("listing_page_parsed", url=url, records=len(records))
            result.records.extend(records)

        if failures == len(target_urls):
            raise AdapterError(self.name, f"all {failures} listing pages failed")

        return result

    def _fetch(self, url: str) -> str:
        return self._request('GET', url).text

    def parse_page(self, html: str, source_url: str, query: ScrapeQuery) -> List[RawRecord]:
        """
        Extract property records from one listing page.

        Args:
            html: Page markup
            source_url: URL the page was fetched from
            query: Query driving the crawl (supplies the asset type)

        Returns:
            Raw records tagged with this adapter's source name
        """
        soup = BeautifulSoup(html, 'html.parser')

        items: List[Dict[str, Any]] = []
        items.extend(self._from_structured_data(soup))
        items.extend(self._from_listing_cards(soup))
        if not items:
            items = self._from_text_patterns(soup, query)

        records = []
        for item in items:
            item.setdefault('source_url', source_url)
            item['source'] = self.name
            records.append(RawRecord.model_validate(item))
        return records

    def _from_structured_data(self, soup: BeautifulSoup) -> List[Dict[str, Any]]:
        found = []
        for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
            raw = script.string or script.get_text(strip=True)
            if not raw:
                continue
            try:
                data = json.loads(raw)
            except ValueError:
                logger.debug("jsonld_decode_failed", length=len(raw))
                continue

            for obj in _walk_jsonld(data):
                if _jsonld_type(obj) & JSONLD_PROPERTY_TYPES:
                    item = _jsonld_to_item(obj)
                    if item.get('name') or item.get('address'):
                        found.append(item)
        return found

    def _from_listing_cards(self, soup: BeautifulSoup) -> List[Dict[str, Any]]:
        found = []
        seen = set()
        for selector in CARD_SELECTORS:
            for card in soup.select(selector):
                if id(card) in seen:
                    continue
                seen.add(id(card))

                name = _text(card.select_one(NAME_SELECTORS))
                address = _text(card.select_one(ADDRESS_SELECTORS))
                if not (name and address):
                    continue

                item = {'name': name, 'address': address}
                rent = _text(card.select_one(RENT_SELECTORS))
                if rent:
                    item['rent_pu'] = rent
                amenities = _text(card.select_one(AMENITY_SELECTORS))
                if amenities:
                    item['notes'] = amenities
                link = card.find('a', href=True)
                if link and link['href'].startswith(('http://', 'https://')):
                    item['source_url'] = link['href']
                found.append(item)
        return found

    def _from_text_patterns(self, soup: BeautifulSoup, query: ScrapeQuery) -> List[Dict[str, Any]]:
        text = soup.get_text(' ', strip=True)
        addresses = []
        for match in ADDRESS_PATTERN.finditer(text):
            address = ' '.join(match.group(0).split())
            if address not in addresses:
                addresses.append(address)
            if len(addresses) >= MAX_TEXT_MATCHES:
                break
        rents = RENT_PATTERN.findall(text)

        found = []
        for idx, address in enumerate(addresses):
            found.append({
                'name': f"Property at {address}",
                'address': address,
                'rent_pu': rents[idx] if idx < len(rents) else None,
                'asset_type': query.asset_type,
            })
        return found


def _text(element) -> Optional[str]:
    if element is None:
        return None
    value = element.get_text(' ', strip=True)
    return value or None


def _walk_jsonld(data: Any) -> Iterable[Dict[str, Any]]:
    """Yield every object in a JSON-LD document, descending into @graph and lists."""
    if isinstance(data, list):
        for item in data:
            yield from _walk_jsonld(item)
    elif isinstance(data, dict):
        yield data
        if '@graph' in data:
            yield from _walk_jsonld(data['@graph'])
        if 'itemListElement' in data:
            for element in data['itemListElement'] or []:
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    yield from _walk_jsonld(element['item'])
                else:
                    yield from _walk_jsonld(element)


def _jsonld_type(obj: Dict[str, Any]) -> set:
    value = obj.get('@type', '')
    values = value if isinstance(value, list) else [value]
    return {str(v).lower() for v in values}


def _unit_count(value: Any) -> Any:
    """numberOfAccommodationUnits is a number or a QuantitativeValue."""
    if isinstance(value, dict):
        return value.get('value')
    return value


def _jsonld_to_item(obj: Dict[str, Any]) -> Dict[str, Any]:
    item: Dict[str, Any] = {'name': obj.get('name')}

    address = obj.get('address')
    if isinstance(address, dict):
        item['address'] = address.get('streetAddress')
        item['city'] = address.get('addressLocality')
        item['state'] = address.get('addressRegion')
        item['zip_code'] = address.get('postalCode')
    elif isinstance(address, str):
        item['address'] = address

    if obj.get('numberOfAccommodationUnits') is not None:
        item['units'] = _unit_count(obj['numberOfAccommodationUnits'])
    if obj.get('yearBuilt') is not None:
        item['year_built'] = obj['yearBuilt']

    offers = obj.get('offers')
    if isinstance(offers, list) and offers:
        offers = offers[0]
    if isinstance(offers, dict):
        item['rent_pu'] = offers.get('price') or offers.get('lowPrice')
    elif obj.get('priceRange'):
        item['rent_pu'] = obj['priceRange']

    features = obj.get('amenityFeature')
    if isinstance(features, dict):
        features = [features]
    if isinstance(features, list):
        item['amenity_tags'] = [
            feature.get('name') if isinstance(feature, dict) else feature
            for feature in features
        ]

    if obj.get('description'):
        item['notes'] = obj['description']
    if obj.get('url'):
        item['source_url'] = obj['url']
    return item
