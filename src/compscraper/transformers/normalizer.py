"""
Record Normalizer

The single boundary where untrusted adapter output (RawRecord) becomes the
trusted NormalizedRecord shape. Normalization never raises: fields that cannot
be parsed are omitted.
"""
import hashlib
import math
import re
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Union

from src.compscraper.models.records import NormalizedRecord, RawRecord
from src.compscraper.transformers.address_standardizer import AddressStandardizer
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")

# Canonical amenity tag -> patterns searched in notes and supplied tags
AMENITY_VOCABULARY = {
    'pool': r"\bpool\b|swimming",
    'fitness': r"fitness|\bgym\b",
    'parking': r"parking",
    'garage': r"garage",
    'balcony': r"balcon(?:y|ies)",
    'patio': r"\bpatio\b",
    'laundry': r"laundry|washer|\bw/d\b",
    'pet-friendly': r"pet[\s-]?friendly|dogs? allowed|cats? allowed|dog park",
    'elevator': r"elevator",
    'concierge': r"concierge",
    'doorman': r"doorman",
    'rooftop': r"roof[\s-]?top",
    'clubhouse': r"clubhouse",
    'dishwasher': r"dishwasher",
    'storage': r"storage",
    'ev-charging': r"\bev\b charging|electric vehicle",
    'coworking': r"co-?working|business center",
}

_AMENITY_PATTERNS = {tag: re.compile(pattern, re.IGNORECASE) for tag, pattern in AMENITY_VOCABULARY.items()}

ASSET_TYPES = [
    ('mixed', 'Mixed-Use'),
    ('condo', 'Condo'),
    ('multi', 'Multifamily'),
    ('apartment', 'Multifamily'),
    ('office', 'Commercial'),
    ('commercial', 'Commercial'),
    ('retail', 'Retail'),
    ('industrial', 'Industrial'),
]


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a loosely typed numeric value.

    Accepts numbers and strings with currency symbols, thousands separators,
    percent signs or trailing units ("$1,850/mo", "150 units").

    Returns:
        Float value, or None when absent or unparsable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        raw_number = value
    else:
        text = str(value).replace(',', '').replace('$', '').strip()
        if not text:
            return None
        match = _NUMBER.search(text)
        if not match:
            return None
        raw_number = match.group(0)

    try:
        number = float(raw_number)
    except (OverflowError, ValueError):
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    if number is None:
        return None
    return int(round(number))


def clean_string(value: Any) -> Optional[str]:
    """Trimmed, whitespace-collapsed string or None."""
    if value is None or isinstance(value, (list, dict)):
        return None
    try:
        text = str(value)
    except ValueError:
        # ints past the str() digit limit
        return None
    cleaned = ' '.join(text.split())
    return cleaned or None


def format_amount(value: float) -> str:
    """Render 1800.0 as "1800" and 1.950 as "1.95"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip('0').rstrip('.')


def build_unit_plan(
    units: Optional[int],
    rent_psf: Optional[float],
    rent_pu: Optional[float],
    name: Optional[str] = None,
    notes: Optional[str] = None,
) -> str:
    """
    Unit-plan signature, e.g. "150u|$1.95psf|$1800pu".

    Only present fields are included. When all three are absent the plan is a
    short digest of the name and notes so distinct undescribed plans at one
    address do not collide; with no name or notes either it is empty and the
    natural key degrades to the address alone.
    """
    parts = []
    if units is not None:
        parts.append(f"{units}u")
    if rent_psf is not None:
        parts.append(f"${format_amount(rent_psf)}psf")
    if rent_pu is not None:
        parts.append(f"${format_amount(rent_pu)}pu")
    if parts:
        return '|'.join(parts)

    text = '|'.join(part.lower() for part in (name, notes) if part)
    if not text:
        return ''
    return '~' + hashlib.sha1(text.encode('utf-8')).hexdigest()[:10]


def _vocabulary_tags(text: str) -> List[str]:
    return [tag for tag, pattern in _AMENITY_PATTERNS.items() if pattern.search(text)]


def extract_amenities(notes: Optional[str], supplied: Any = None) -> List[str]:
    """
    Union of vocabulary amenities found in the notes and any supplied tags.

    A supplied tag that matches the vocabulary is replaced by its canonical
    tag ("Swimming Pool" -> "pool", "gym" -> "fitness"); other supplied tags
    are kept lowercased.

    Args:
        notes: Free-text description
        supplied: Explicit amenity tags (list, or comma-separated string)

    Returns:
        Sorted, deduplicated lowercase tags
    """
    tags = set()

    explicit: Iterable = []
    if isinstance(supplied, str):
        explicit = supplied.split(',')
    elif isinstance(supplied, (list, tuple, set)):
        explicit = supplied

    for item in explicit:
        if isinstance(item, Mapping):
            item = item.get('name')
        tag = clean_string(item)
        if tag:
            tags.update(_vocabulary_tags(tag) or [tag.lower()])

    if notes:
        tags.update(_vocabulary_tags(notes))

    return sorted(tags)


def normalize_asset_type(value: Any) -> str:
    text = clean_string(value)
    if not text:
        return 'Multifamily'
    lowered = text.lower()
    for needle, label in ASSET_TYPES:
        if needle in lowered:
            return label
    return 'Multifamily'


def _is_share(value: Any) -> bool:
    """True when a raw occupancy reads as a 0-1 share: a float, or a decimal string without '%'."""
    if isinstance(value, float):
        return True
    if isinstance(value, str):
        return '.' in value and '%' not in value
    return False


def _percent(value: Any, fraction_scale: bool = False) -> Optional[float]:
    number = parse_number(value)
    if number is None:
        return None
    if fraction_scale and 0 < number <= 1 and _is_share(value):
        number *= 100
    if number < 0 or number > 100:
        return None
    return round(number, 2)


def _positive(value: Optional[float]) -> Optional[float]:
    if value is None or value <= 0:
        return None
    return value


class RecordNormalizer:
    """
    Converts raw adapter records into canonical NormalizedRecords.
    """

    def __init__(self, standardizer: Optional[AddressStandardizer] = None):
        self.standardizer = standardizer or AddressStandardizer()

    def normalize(self, raw: Union[RawRecord, Mapping[str, Any]]) -> NormalizedRecord:
        """
        Normalize one raw record.

        Args:
            raw: RawRecord or plain mapping with any of the accepted field names

        Returns:
            NormalizedRecord; unparsable fields are left unset
        """
        if not isinstance(raw, RawRecord):
            raw = RawRecord.model_validate(dict(raw) if isinstance(raw, Mapping) else {})

        address = clean_string(raw.address)
        city = clean_string(raw.city)
        state = clean_string(raw.state)
        zip_code = self.standardizer.normalize_zip(raw.zip_code)
        if state and len(state) == 2:
            state = state.upper()

        units = parse_int(raw.units)
        if units is not None and units <= 0:
            units = None

        year_built = parse_int(raw.year_built)
        if year_built is not None and not (1800 <= year_built <= date.today().year + 1):
            year_built = None

        rent_psf = _positive(parse_number(raw.rent_psf))
        rent_pu = _positive(parse_number(raw.rent_pu))
        if rent_psf is not None:
            rent_psf = round(rent_psf, 2)
        if rent_pu is not None:
            rent_pu = round(rent_pu, 2)

        name = clean_string(raw.name)
        notes = clean_string(raw.notes)

        record = NormalizedRecord(
            name=name,
            address=address,
            city=city,
            state=state,
            zip_code=zip_code,
            asset_type=normalize_asset_type(raw.asset_type),
            units=units,
            year_built=year_built,
            rent_psf=rent_psf,
            rent_pu=rent_pu,
            occupancy_pct=_percent(raw.occupancy_pct, fraction_scale=True),
            concession_pct=_percent(raw.concession_pct),
            amenity_tags=extract_amenities(notes, raw.amenity_tags),
            notes=notes,
            source=clean_string(raw.source) or 'unknown',
            source_url=clean_string(raw.source_url),
            canonical_address=self.standardizer.canonicalize(address, city, state, zip_code),
            unit_plan=build_unit_plan(units, rent_psf, rent_pu, name=name, notes=notes),
        )

        if not record.has_address():
            logger.debug("record_normalized_without_address", name=name, source=record.source)

        return record


_default_normalizer = RecordNormalizer()


def normalize(raw: Union[RawRecord, Mapping[str, Any]]) -> NormalizedRecord:
    """Normalize one raw record with the default normalizer."""
    return _default_normalizer.normalize(raw)
