# listing_import/normalize.py
"""Mapping from an ``ExternalListing`` to ``listings`` column values."""
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from . import config
from .classify import STUDIO_CATEGORY
from .schemas import ExternalListing, OccupationPeriod

DEFAULT_CITY = "Milano"
DEFAULT_COUNTRY = "Italy"
CALENDAR_DAYS = 365
DAYS_PER_MONTH = 30

STATUS_DRAFT = "DRAFT"
REVIEW_PENDING = "pending_review"

CATEGORY_LABELS = {
    "stanza": "Room",
    "monolocale": "Studio",
    "bilocale": "Two-room apartment",
    "trilocale": "Three-room apartment",
    "appartamento": "Apartment",
}


def extract_city(address: Optional[str]) -> str:
    # the marketplace only serves Milan; every address maps there
    return DEFAULT_CITY


def generate_title(listing: ExternalListing, mapped_category: str) -> str:
    label = listing.category or CATEGORY_LABELS.get(mapped_category, "Room")
    return f"{label} in {listing.city or extract_city(listing.address)}"


def _country(value: Optional[str]) -> str:
    if not value or value.upper() == "IT":
        return DEFAULT_COUNTRY
    return value


def _availability_date(value: Optional[date], today: date) -> date:
    if value is None:
        return today
    return min(value, today + timedelta(days=CALENDAR_DAYS))


def default_deposit(rent: Optional[float]) -> float:
    return round((rent or 0) * config.DEFAULT_DEPOSIT_MONTHS, 2)


def normalize(
    listing: ExternalListing,
    owner_id: int,
    mapped_category: str,
    *,
    source: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    if listing.bedrooms:
        bedrooms = listing.bedrooms
    else:
        bedrooms = 0 if mapped_category == STUDIO_CATEGORY else 1

    return {
        "external_source": source,
        "external_listing_id": listing.code,
        "agency_id": owner_id,
        "title": listing.title or generate_title(listing, mapped_category),
        "type": mapped_category,
        "description": listing.description or "",
        "address_line": listing.address or "",
        "postcode": listing.postcode,
        "city": listing.city or extract_city(listing.address),
        "country": _country(listing.country),
        "lat": listing.lat,
        "lng": listing.lng,
        "rent_monthly_eur": listing.price,
        "deposit_eur": listing.deposit if listing.deposit else default_deposit(listing.price),
        "bills_included": bool(listing.bills_included),
        "furnished": listing.furnished is not False,
        "bedrooms": bedrooms,
        "bathrooms": listing.bathrooms or 1,
        "floor": listing.floor,
        "size_sqm": listing.size,
        "amenities": list(listing.amenities),
        "images": list(listing.images),
        "availability_date": _availability_date(listing.availability_date, now.date()),
        "minimum_stay_days": listing.minimum_stay * DAYS_PER_MONTH if listing.minimum_stay else 30,
        "maximum_stay_days": listing.maximum_stay * DAYS_PER_MONTH if listing.maximum_stay else 365,
        "status": STATUS_DRAFT,
        "review_status": REVIEW_PENDING,
        "raw_json": listing.raw or None,
        "last_synced_at": now,
    }


def build_availability(periods: List[OccupationPeriod], start: date, days: int = CALENDAR_DAYS) -> List[Dict[str, Any]]:
    """Dense calendar of ``days`` dates from ``start``; occupied dates are unavailable."""
    rows = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        occupied = any(p.start <= day <= p.end for p in periods)
        rows.append({"date": day, "is_available": not occupied})
    return rows
