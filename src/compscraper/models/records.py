"""
Property Record Models

RawRecord is the untrusted shape returned by source adapters; NormalizedRecord
is the trusted, strictly typed shape produced by the normalizer.
"""
from typing import Any, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class RawRecord(BaseModel):
    """
    Loosely typed property record as returned by a source adapter.

    Every field is optional and may hold any type (a unit count can arrive as
    "1,200" or 1200). Field-name variants used by different sources are
    accepted as aliases; unknown keys are kept as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Any = Field(None, validation_alias=_alias("name", "title", "property_name", "propertyName"))
    address: Any = Field(None, validation_alias=_alias("address", "full_address", "street_address", "streetAddress"))
    city: Any = Field(None, validation_alias=_alias("city", "addressLocality"))
    state: Any = Field(None, validation_alias=_alias("state", "addressRegion"))
    zip_code: Any = Field(None, validation_alias=_alias("zip_code", "zip", "zipCode", "postalCode"))
    asset_type: Any = Field(None, validation_alias=_alias("asset_type", "assetType", "property_type", "propertyType"))
    units: Any = Field(None, validation_alias=_alias("units", "unit_count", "unitCount"))
    year_built: Any = Field(None, validation_alias=_alias("year_built", "yearBuilt"))
    rent_psf: Any = Field(None, validation_alias=_alias("rent_psf", "rentPsf", "price_per_sqft", "pricePerSqft"))
    rent_pu: Any = Field(None, validation_alias=_alias("rent_pu", "rentPu", "rent", "price"))
    occupancy_pct: Any = Field(None, validation_alias=_alias("occupancy_pct", "occupancyPct", "occupancy"))
    concession_pct: Any = Field(None, validation_alias=_alias("concession_pct", "concessionPct", "concession"))
    amenity_tags: Any = Field(None, validation_alias=_alias("amenity_tags", "amenityTags", "amenities"))
    notes: Any = Field(None, validation_alias=_alias("notes", "description"))
    source: Any = Field(None, validation_alias=_alias("source",))
    source_url: Any = Field(None, validation_alias=_alias("source_url", "sourceUrl", "url"))

    def with_locality(self, city: Optional[str], state: Optional[str]) -> "RawRecord":
        """
        Fill a missing city/state from the query's locality.

        Sources frequently return only a street line for listings that sit in
        the searched city.
        """
        update = {}
        if not _present(self.city) and city:
            update["city"] = city
        if not _present(self.state) and state:
            update["state"] = state
        if not update:
            return self
        return self.model_copy(update=update)


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


class NormalizedRecord(BaseModel):
    """
    Canonical comparable record.

    Attributes:
        canonical_address: Comparison-ready address (None when no address)
        unit_plan: Unit count / rent signature, second half of the natural key
        amenity_tags: Sorted, deduplicated lowercase tags
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    asset_type: str = "Multifamily"
    units: Optional[int] = None
    year_built: Optional[int] = None
    rent_psf: Optional[float] = None
    rent_pu: Optional[float] = None
    occupancy_pct: Optional[float] = None
    concession_pct: Optional[float] = None
    amenity_tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    source: str = "unknown"
    source_url: Optional[str] = None
    canonical_address: Optional[str] = None
    unit_plan: str = ""

    @property
    def natural_key(self) -> Tuple[str, str]:
        """(canonical_address, unit_plan) identity used for dedup and upsert."""
        return (self.canonical_address or "", self.unit_plan)

    def has_address(self) -> bool:
        """Check if the record can be keyed by address."""
        return bool(self.canonical_address)

    def to_row(self) -> dict:
        """Column values for the comparables table."""
        row = self.model_dump()
        # Empty lists are stored as NULL so upserts can keep existing tags
        row["amenity_tags"] = list(self.amenity_tags) or None
        return row
