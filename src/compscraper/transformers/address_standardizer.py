"""
Address Standardization Transformer

Builds the canonical, comparison-ready form of a property address so the same
physical address normalizes identically across data sources.
"""
import re
from typing import List, Optional, Tuple

from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)


class AddressStandardizer:
    """
    Canonicalizes addresses for natural-key matching.

    Handles capitalization, punctuation and street-suffix spelling variance.
    The transform is pure and deterministic.
    """

    # Street type abbreviations
    STREET_TYPES = {
        'alley': 'aly', 'avenue': 'ave', 'av': 'ave', 'boulevard': 'blvd', 'circle': 'cir',
        'court': 'ct', 'cove': 'cv', 'crossing': 'xing', 'drive': 'dr', 'expressway': 'expy',
        'freeway': 'fwy', 'highway': 'hwy', 'lane': 'ln', 'parkway': 'pkwy', 'pike': 'pike',
        'place': 'pl', 'plaza': 'plz', 'point': 'pt', 'ridge': 'rdg', 'road': 'rd',
        'square': 'sq', 'street': 'st', 'str': 'st', 'terrace': 'ter', 'trail': 'trl',
        'turnpike': 'tpke', 'way': 'way',
    }

    # Unit type abbreviations
    UNIT_TYPES = {
        'apartment': 'apt', 'building': 'bldg', 'floor': 'fl',
        'suite': 'ste', 'room': 'rm', 'number': 'unit', 'no': 'unit',
    }

    # Directional abbreviations
    DIRECTIONS = {
        'north': 'n', 'south': 's', 'east': 'e', 'west': 'w',
        'northeast': 'ne', 'northwest': 'nw', 'southeast': 'se', 'southwest': 'sw',
    }

    _PUNCTUATION = re.compile(r"[^a-z0-9\s\-/&]")
    _ZIP = re.compile(r"^\d{5}(?:-?\d{4})?$")

    STATE_NAMES = {
        'alabama': 'al', 'alaska': 'ak', 'arizona': 'az', 'arkansas': 'ar', 'california': 'ca',
        'colorado': 'co', 'connecticut': 'ct', 'delaware': 'de', 'district of columbia': 'dc',
        'florida': 'fl', 'georgia': 'ga', 'hawaii': 'hi', 'idaho': 'id', 'illinois': 'il',
        'indiana': 'in', 'iowa': 'ia', 'kansas': 'ks', 'kentucky': 'ky', 'louisiana': 'la',
        'maine': 'me', 'maryland': 'md', 'massachusetts': 'ma', 'michigan': 'mi',
        'minnesota': 'mn', 'mississippi': 'ms', 'missouri': 'mo', 'montana': 'mt',
        'nebraska': 'ne', 'nevada': 'nv', 'new hampshire': 'nh', 'new jersey': 'nj',
        'new mexico': 'nm', 'new york': 'ny', 'north carolina': 'nc', 'north dakota': 'nd',
        'ohio': 'oh', 'oklahoma': 'ok', 'oregon': 'or', 'pennsylvania': 'pa',
        'rhode island': 'ri', 'south carolina': 'sc', 'south dakota': 'sd', 'tennessee': 'tn',
        'texas': 'tx', 'utah': 'ut', 'vermont': 'vt', 'virginia': 'va', 'washington': 'wa',
        'west virginia': 'wv', 'wisconsin': 'wi', 'wyoming': 'wy',
    }

    COUNTRY_SUFFIXES = ('united states of america', 'united states', 'usa', 'us')

    def canonicalize(
        self,
        address: Optional[str],
        city: Optional[str] = None,
        state: Optional[str] = None,
        zip_code: Optional[str] = None,
    ) -> Optional[str]:
        """
        Build the canonical address.

        The first comma segment is the street line. Everything after it is
        read as one locality token stream (city, state, ZIP) regardless of
        comma placement, and the result always has the layout
        ``street, city, st zip`` with absent parts left out.

        Args:
            address: Street line, possibly already carrying city/state/ZIP
            city: City name supplied separately
            state: State abbreviation supplied separately
            zip_code: ZIP code supplied separately

        Returns:
            Canonical address ("123 main st, nashville, tn 37201") or None
            when there is no street address
        """
        if not address or not str(address).strip():
            return None

        segments = [self._clean(seg) for seg in str(address).split(',')]
        segments = [seg for seg in segments if seg]
        if not segments:
            return None

        street = ' '.join(self._abbreviate(word) for word in segments[0].split())
        found_city, found_state, found_zip = self._split_locality(' '.join(segments[1:]).split())

        city_part = found_city or self._clean(city)
        state_text = self._clean(state)
        state_part = found_state or self._state_abbreviation(state_text) or state_text
        zip_part = found_zip or self.normalize_zip(zip_code)

        parts: List[str] = [street]
        if city_part:
            parts.append(city_part)
        tail = ' '.join(part for part in (state_part, zip_part) if part)
        if tail:
            parts.append(tail)

        canonical = ', '.join(parts)
        logger.debug("address_canonicalized", original=str(address)[:50], canonical=canonical[:50])
        return canonical

    def _split_locality(self, tokens: List[str]) -> Tuple[str, str, Optional[str]]:
        """Pull a trailing country, ZIP and state off locality tokens; the rest is the city."""
        tokens = list(tokens)

        for country in self.COUNTRY_SUFFIXES:
            words = country.split()
            if len(tokens) > len(words) and tokens[-len(words):] == words:
                tokens = tokens[:-len(words)]
                break

        zip_part = None
        if tokens and self._ZIP.match(tokens[-1]):
            zip_part = self.normalize_zip(tokens.pop())

        state_part = ''
        for width in (3, 2, 1):
            if len(tokens) >= width:
                candidate = self._state_abbreviation(' '.join(tokens[-width:]))
                if candidate:
                    state_part = candidate
                    tokens = tokens[:-width]
                    break

        return ' '.join(tokens), state_part, zip_part

    def _state_abbreviation(self, value: str) -> str:
        """Two-letter state code for a code or a full state name, else ''."""
        if not value:
            return ''
        if len(value) == 2 and value.isalpha():
            return value
        return self.STATE_NAMES.get(value, '')

    def _clean(self, text: Optional[str]) -> str:
        """Lowercase, strip punctuation, collapse whitespace."""
        if text is None:
            return ''
        value = str(text).lower().replace('#', ' unit ')
        value = self._PUNCTUATION.sub(' ', value)
        return ' '.join(value.split())

    def _abbreviate(self, word: str) -> str:
        if word in self.STREET_TYPES:
            return self.STREET_TYPES[word]
        if word in self.DIRECTIONS:
            return self.DIRECTIONS[word]
        if word in self.UNIT_TYPES:
            return self.UNIT_TYPES[word]
        return word

    @staticmethod
    def normalize_zip(zip_code) -> Optional[str]:
        """
        Normalize ZIP code to 5 digits.

        Args:
            zip_code: Raw ZIP code

        Returns:
            5-digit ZIP code or None
        """
        if zip_code is None:
            return None

        digits = re.sub(r'\D', '', str(zip_code))

        if len(digits) >= 5:
            return digits[:5]

        return None
