"""
Scrape Query Model

Pydantic model for the immutable input of a scrape job.
"""
import re
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.settings import settings

_STATE_ZIP = re.compile(r"^([A-Za-z]{2})(?:\s+(\d{5})(?:-\d{4})?)?$")


class Locality(NamedTuple):
    """City, state and ZIP parsed from a free-text address."""
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


def parse_locality(address: Optional[str]) -> Locality:
    """
    Parse the trailing "City, ST 12345" segments of a free-text address.

    Args:
        address: Free-text address such as "123 Main St, Nashville, TN 37201"

    Returns:
        Locality with whichever parts could be identified
    """
    if not address:
        return Locality()

    parts = [part.strip() for part in address.split(",") if part.strip()]
    if len(parts) < 2:
        return Locality()

    match = _STATE_ZIP.match(parts[-1])
    if match:
        return Locality(city=parts[-2], state=match.group(1).upper(), zip_code=match.group(2))

    return Locality()


class ScrapeQuery(BaseModel):
    """
    Location query driving one scrape job.

    Attributes:
        address: Free-text ground-zero address
        radius_mi: Search radius in miles
        asset_type: Asset-type filter (e.g. Multifamily)
        amenities: Amenity keywords of interest
        keywords: Free-text keywords of interest
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    address: str = Field(..., min_length=1, description="Ground-zero address")
    radius_mi: float = Field(
        default_factory=lambda: settings.default_search_radius_miles,
        gt=0,
        description="Search radius in miles",
    )
    asset_type: str = Field(
        default_factory=lambda: settings.default_asset_type,
        description="Asset-type filter",
    )
    amenities: List[str] = Field(default_factory=list, description="Amenity keywords")
    keywords: List[str] = Field(default_factory=list, description="Free-text keywords")

    @field_validator("amenities", "keywords", mode="before")
    @classmethod
    def _coerce_keyword_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("asset_type", mode="before")
    @classmethod
    def _default_blank_asset_type(cls, value):
        if value is None or not str(value).strip():
            return settings.default_asset_type
        return value

    def locality(self) -> Locality:
        """City/state/ZIP of the ground-zero address."""
        return parse_locality(self.address)

    def street_line(self) -> str:
        """First comma segment of the ground-zero address."""
        return self.address.split(",")[0].strip()

    def to_dict(self) -> dict:
        """Serialize for storage on the job record."""
        return self.model_dump(mode="json")
