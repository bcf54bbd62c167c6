# listing_import/filters.py
"""Admission gates applied to every listing before it is persisted."""
from dataclasses import dataclass, field
from typing import Optional

from . import config
from .schemas import ExternalListing


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


MILAN_BOUNDS = BoundingBox(min_lat=45.26, max_lat=45.66, min_lng=9.00, max_lng=9.38)


@dataclass(frozen=True)
class ImportCriteria:
    price_min: float = config.IMPORT_PRICE_MIN
    price_max: float = config.IMPORT_PRICE_MAX
    bounds: BoundingBox = field(default=MILAN_BOUNDS)


DEFAULT_CRITERIA = ImportCriteria()


def price_in_band(price: Optional[float], criteria: ImportCriteria = DEFAULT_CRITERIA) -> bool:
    price = price or 0
    return criteria.price_min <= price <= criteria.price_max


def coordinates_in_bounds(lat: Optional[float], lng: Optional[float], criteria: ImportCriteria = DEFAULT_CRITERIA) -> bool:
    # 0/0 is what feeds send when they have no location
    if not lat or not lng:
        return False
    return criteria.bounds.contains(lat, lng)


def rejection_reason(listing: ExternalListing, criteria: ImportCriteria = DEFAULT_CRITERIA) -> Optional[str]:
    if not price_in_band(listing.price, criteria):
        return (
            f"Price {listing.price or 0:g}€ outside "
            f"{criteria.price_min:g}-{criteria.price_max:g}€ range"
        )
    if not coordinates_in_bounds(listing.lat, listing.lng, criteria):
        return f"Invalid or out-of-area coordinates ({listing.lat}, {listing.lng})"
    return None


def admit(listing: ExternalListing, criteria: ImportCriteria = DEFAULT_CRITERIA) -> bool:
    return rejection_reason(listing, criteria) is None
