"""
Unit tests for the listing page crawler
"""
import json
from unittest.mock import Mock

import pytest
import requests

from src.compscraper.exceptions import AdapterConfigurationError, AdapterError
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.scrapers.listing_crawler import ListingCrawlerAdapter

JSONLD_PAGE = """
<html><head>
<script type="application/ld+json">%s</script>
</head><body><h1>Apartments for rent</h1></body></html>
""" % json.dumps({
    "@context": "https://schema.org",
    "@graph": [
        {"@type": "WebSite", "name": "Listings"},
        {
            "@type": "ApartmentComplex",
            "name": "Oak Apartments",
            "address": {
                "streetAddress": "123 Main Street",
                "addressLocality": "Nashville",
                "addressRegion": "TN",
                "postalCode": "37201",
            },
            "numberOfAccommodationUnits": {"@type": "QuantitativeValue", "value": 150},
            "numberOfRooms": 2,
            "offers": {"price": 1800},
            "amenityFeature": [{"name": "Pool"}, {"name": "Gym"}],
            "url": "https://listings.example/oak",
        },
    ],
})

CARD_PAGE = """
<html><body>
<div class="property-card">
  <h2 class="property-name">Elm Court</h2>
  <div class="address">9 Elm St, Nashville, TN</div>
  <span class="rent">$1,450</span>
  <div class="amenities">Pool, covered parking</div>
  <a href="https://listings.example/elm">View</a>
</div>
<div class="property-card">
  <h2 class="property-name">No Address Lofts</h2>
</div>
</body></html>
"""

TEXT_PAGE = """
<html><body>
<p>Call about 88 Elm Street from $1,250 per month. Also 12 Oak Ave at $990.</p>
</body></html>
"""


@pytest.fixture
def query():
    return ScrapeQuery(address="123 Main St", asset_type="Multifamily")


def _adapter(session=None, seed_urls=("https://listings.example/a",)):
    return ListingCrawlerAdapter(
        seed_urls=list(seed_urls),
        interval_seconds=0,
        session=session or Mock(),
        sleep=Mock(),
    )


class TestParsePage:
    """Tests for ListingCrawlerAdapter.parse_page"""

    def test_structured_data(self, query):
        """Test JSON-LD property objects are extracted from @graph"""
        records = _adapter().parse_page(JSONLD_PAGE, "https://listings.example/a", query)

        assert len(records) == 1
        record = records[0]
        assert record.name == "Oak Apartments"
        assert record.address == "123 Main Street"
        assert record.city == "Nashville"
        assert record.zip_code == "37201"
        assert record.units == 150
        assert record.rent_pu == 1800
        assert record.amenity_tags == ["Pool", "Gym"]
        assert record.source == "listing_crawler"
        assert record.source_url == "https://listings.example/oak"

    def test_room_count_is_not_unit_count(self, query):
        """Test numberOfRooms on a single apartment does not become a unit count"""
        page = '<script type="application/ld+json">%s</script>' % json.dumps({
            "@type": "Apartment",
            "name": "Unit 4B",
            "address": "12 Oak Ave, Nashville, TN",
            "numberOfRooms": 2,
            "offers": {"price": 1500},
        })

        records = _adapter().parse_page(page, "https://listings.example/a", query)

        assert len(records) == 1
        assert records[0].units is None
        assert records[0].rent_pu == 1500

    def test_listing_cards(self, query):
        """Test cards need both a name and an address"""
        records = _adapter().parse_page(CARD_PAGE, "https://listings.example/a", query)

        assert len(records) == 1
        record = records[0]
        assert record.name == "Elm Court"
        assert record.address == "9 Elm St, Nashville, TN"
        assert record.rent_pu == "$1,450"
        assert record.notes == "Pool, covered parking"
        assert record.source_url == "https://listings.example/elm"

    def test_text_patterns(self, query):
        """Test street addresses and rents are matched in plain text"""
        records = _adapter().parse_page(TEXT_PAGE, "https://listings.example/a", query)

        assert [r.address for r in records] == ["88 Elm Street", "12 Oak Ave"]
        assert records[0].name == "Property at 88 Elm Street"
        assert records[0].rent_pu == "$1,250"
        assert records[1].rent_pu == "$990"
        assert records[0].asset_type == "Multifamily"
        assert records[0].source_url == "https://listings.example/a"

    def test_text_matches_are_capped(self, query):
        """Test the text scan stops after five addresses"""
        body = " ".join(f"{n} Main Street" for n in range(100, 110))
        records = _adapter().parse_page(f"<p>{body}</p>", "https://listings.example/a", query)
        assert len(records) == 5

    def test_text_scan_skipped_when_structured_results(self, query):
        """Test the text scan only runs when nothing else matched"""
        page = CARD_PAGE.replace("</body>", "<p>Also 500 Broadway Street</p></body>")
        records = _adapter().parse_page(page, "https://listings.example/a", query)
        assert [r.name for r in records] == ["Elm Court"]

    def test_empty_page(self, query):
        """Test a page with nothing recognizable yields no records"""
        assert _adapter().parse_page("<html><body>Nothing here</body></html>", "u", query) == []


class TestListingSearch:
    """Tests for ListingCrawlerAdapter.search"""

    def test_failed_page_becomes_caveat(self, query):
        """Test pages failing after retries become caveats"""
        session = Mock()
        session.request.side_effect = [
            Mock(status_code=200, text=CARD_PAGE),
            requests.ConnectionError("refused"),
            requests.ConnectionError("refused"),
            requests.ConnectionError("refused"),
        ]
        adapter = _adapter(session, seed_urls=("https://listings.example/a", "https://listings.example/b"))

        result = adapter.search(query)

        assert [r.name for r in result.records] == ["Elm Court"]
        assert len(result.caveats) == 1
        assert result.caveats[0].startswith("listing_crawler could not fetch https://listings.example/b")
        assert session.request.call_count == 4

    def test_every_page_failing_raises(self, query):
        """Test the adapter fails when no page can be fetched"""
        session = Mock()
        session.request.return_value = Mock(status_code=404)

        with pytest.raises(AdapterError):
            _adapter(session).search(query)

    def test_no_target_urls(self, query):
        """Test a query without city or seeds is a configuration error"""
        with pytest.raises(AdapterConfigurationError):
            _adapter(seed_urls=()).search(query)

    def test_max_pages(self, query):
        """Test the page cap limits requests"""
        session = Mock()
        session.request.return_value = Mock(status_code=200, text=TEXT_PAGE)
        adapter = ListingCrawlerAdapter(
            seed_urls=["https://listings.example/a", "https://listings.example/b"],
            max_pages=1,
            interval_seconds=0,
            session=session,
            sleep=Mock(),
        )

        adapter.search(query)

        assert session.request.call_count == 1
