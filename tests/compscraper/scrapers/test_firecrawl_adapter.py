"""
Unit tests for the Firecrawl extraction adapter
"""
from unittest.mock import Mock

import pytest

from src.compscraper.exceptions import AdapterConfigurationError, AdapterError
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.scrapers.firecrawl_adapter import FirecrawlAdapter

SEED_A = "https://listings.example/a"
SEED_B = "https://listings.example/b"


def _response(payload, status_code=200):
    response = Mock(status_code=status_code)
    response.json.return_value = payload
    return response


def _extracted(*properties):
    return {"success": True, "data": {"extract": {"properties": list(properties)}}}


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def query():
    return ScrapeQuery(address="123 Main St", amenities=["pool"])


def _adapter(session, seed_urls=(SEED_A,), api_key="fc-test"):
    return FirecrawlAdapter(
        api_key=api_key,
        base_url="https://firecrawl.test/v1/",
        max_urls=5,
        seed_urls=list(seed_urls),
        interval_seconds=0,
        session=session,
        sleep=Mock(),
    )


class TestFirecrawlSearch:
    """Tests for FirecrawlAdapter.search"""

    def test_extracts_properties(self, session, query):
        """Test extracted properties become raw records"""
        session.request.return_value = _response(_extracted(
            {"name": "Oak Apartments", "address": "123 Main Street", "units": 150, "rent": "$1,800"},
            {"name": "Elm Court", "address": "9 Elm St", "url": "https://listings.example/elm"},
        ))

        result = _adapter(session).search(query)

        assert len(result.records) == 2
        oak, elm = result.records
        assert oak.name == "Oak Apartments"
        assert oak.rent_pu == "$1,800"
        assert oak.source == "firecrawl"
        assert oak.source_url == SEED_A
        assert elm.source_url == "https://listings.example/elm"
        assert result.caveats == []

    def test_request_shape(self, session, query):
        """Test the scrape request carries auth, target URL and schema"""
        session.request.return_value = _response(_extracted())

        _adapter(session).search(query)

        args, kwargs = session.request.call_args
        assert args == ('POST', 'https://firecrawl.test/v1/scrape')
        assert kwargs['headers'] == {'Authorization': 'Bearer fc-test'}
        assert kwargs['json']['url'] == SEED_A
        assert kwargs['json']['formats'] == ['extract']
        assert 'pool' in kwargs['json']['extract']['prompt']

    def test_missing_api_key(self, session, query):
        """Test an unconfigured key fails without any request"""
        with pytest.raises(AdapterConfigurationError):
            _adapter(session, api_key="").search(query)
        session.request.assert_not_called()

    def test_no_target_urls(self, session, query):
        """Test a query with no city and no seeds cannot be searched"""
        with pytest.raises(AdapterConfigurationError):
            _adapter(session, seed_urls=()).search(query)

    def test_failed_url_becomes_caveat(self, session, query):
        """Test one failing URL does not fail the whole search"""
        session.request.side_effect = [
            _response(_extracted({"name": "Oak", "address": "1 Oak St"})),
            _response({"success": False, "error": "page blocked"}),
        ]

        result = _adapter(session, seed_urls=(SEED_A, SEED_B)).search(query)

        assert len(result.records) == 1
        assert len(result.caveats) == 1
        assert result.caveats[0].startswith(f"firecrawl could not extract {SEED_B}")
        assert "page blocked" in result.caveats[0]

    def test_quota_error_is_not_retried(self, session, query):
        """Test quota rejections fail fast and fail the search when every URL fails"""
        session.request.return_value = _response({}, status_code=402)

        with pytest.raises(AdapterError):
            _adapter(session).search(query)
        assert session.request.call_count == 1

    def test_transient_errors_are_retried(self, session, query):
        """Test server errors are retried before succeeding"""
        session.request.side_effect = [
            _response({}, status_code=503),
            _response(_extracted({"name": "Oak", "address": "1 Oak St"})),
        ]

        result = _adapter(session).search(query)

        assert len(result.records) == 1
        assert session.request.call_count == 2


class TestParseResponse:
    """Tests for FirecrawlAdapter._parse_response"""

    def test_legacy_extraction_key(self, session):
        """Test the llm_extraction payload key is accepted"""
        payload = {"data": {"llm_extraction": {"properties": [{"name": "Oak"}]}}}
        records = _adapter(session)._parse_response(payload, SEED_A)
        assert [r.name for r in records] == ["Oak"]

    def test_missing_properties(self, session):
        """Test an empty extraction yields no records"""
        assert _adapter(session)._parse_response({"data": {}}, SEED_A) == []

    def test_properties_not_a_list(self, session):
        """Test a malformed extraction is rejected"""
        with pytest.raises(AdapterError):
            _adapter(session)._parse_response({"data": {"extract": {"properties": "Oak"}}}, SEED_A)

    @pytest.mark.parametrize("payload", [
        {"data": [{"extract": {"properties": []}}]},
        {"data": "Oak Apartments"},
        ["not", "an", "object"],
    ])
    def test_data_not_an_object(self, session, payload):
        """Test non-object payloads are rejected as malformed"""
        with pytest.raises(AdapterError):
            _adapter(session)._parse_response(payload, SEED_A)

    def test_malformed_url_keeps_other_records(self, session, query):
        """Test a malformed page does not discard records from the other URLs"""
        session.request.side_effect = [
            _response(_extracted({"name": "Oak", "address": "1 Oak St"})),
            _response({"success": True, "data": ["unexpected"]}),
        ]

        result = _adapter(session, seed_urls=(SEED_A, SEED_B)).search(query)

        assert [r.name for r in result.records] == ["Oak"]
        assert len(result.caveats) == 1
        assert result.caveats[0].startswith(f"firecrawl could not extract {SEED_B}")
