# listing_import/schemas.py
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .errors import InvalidListingError
from .utils import normalize_number


def _dig(payload: Dict[str, Any], path: str):
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


def _first(payload: Dict[str, Any], *paths: str):
    for path in paths:
        val = _dig(payload, path)
        if val is not None and val != "":
            return val
    return None


def _number(val, amount=False) -> Optional[float]:
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val)
    s = str(val).strip()
    try:
        # money strings carry thousands separators; coordinates never do
        return float(normalize_number(s) if amount else s.replace(",", "."))
    except ValueError:
        return None


def _int(val) -> Optional[int]:
    n = _number(val)
    return int(n) if n is not None else None


def _text(val) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def _flag(val) -> Optional[bool]:
    if val is None:
        return None
    if isinstance(val, str):
        return val.strip().lower() in ("1", "true", "yes", "y")
    return bool(val)


def _images(payload: Dict[str, Any]) -> List[str]:
    imgs = _first(payload, "photos", "images", "pictures") or []
    if not isinstance(imgs, list):
        return []
    out = []
    for it in imgs:
        url = it if isinstance(it, str) else (it.get("url") or it.get("src")) if isinstance(it, dict) else None
        if isinstance(url, str) and url:
            out.append(url)
    return out


def _deposit(payload: Dict[str, Any]) -> Optional[float]:
    direct = _number(payload.get("deposit"), amount=True)
    if direct:
        return direct
    for s in payload.get("surcharges") or []:
        if isinstance(s, dict) and s.get("type") == "security_deposit":
            return _number(s.get("deposit"), amount=True)
    return None


def _bills_included(payload: Dict[str, Any]) -> Optional[bool]:
    flag = _flag(payload.get("bills_included"))
    if flag is not None:
        return flag
    utilities = payload.get("utilities")
    if isinstance(utilities, dict) and utilities.get("included_in_rent") is not None:
        return len(utilities.get("included_in_rent") or []) > 0
    return None


class OccupationPeriod(BaseModel):
    start: date = Field(alias="from")
    end: date = Field(alias="to")

    model_config = {"populate_by_name": True}


class ExternalListing(BaseModel):
    """A single upstream listing, coerced from whatever shape the source sent."""
    code: str = Field(..., max_length=255)
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    currency: str = "EUR"
    deposit: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    size: Optional[float] = None
    floor: Optional[str] = None
    address: Optional[str] = None
    postcode: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    amenities: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    availability_date: Optional[date] = None
    furnished: Optional[bool] = None
    bills_included: Optional[bool] = None
    minimum_stay: Optional[int] = None
    maximum_stay: Optional[int] = None
    occupation_periods: List[OccupationPeriod] = Field(default_factory=list)
    url: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, payload: Any) -> "ExternalListing":
        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, dict):
            raise InvalidListingError(f"listing payload must be an object, got {type(payload).__name__}")
        code = _text(_first(payload, "code", "listing_code", "id"))
        if not code:
            raise InvalidListingError("listing code missing")

        avail = _first(payload, "availability_date", "first_availability")
        try:
            availability = datetime.fromisoformat(str(avail)[:10]).date() if avail else None
        except ValueError:
            availability = None

        periods = []
        for p in payload.get("occupation_periods") or []:
            try:
                periods.append(OccupationPeriod.model_validate(p))
            except ValueError:
                continue

        amenities = payload.get("amenities") or []
        return cls(
            code=code,
            title=_text(_first(payload, "title", "name")),
            description=_text(payload.get("description")),
            category=_text(_first(payload, "category", "type")),
            price=_number(_first(payload, "price", "rent", "monthly_price"), amount=True),
            currency=_text(payload.get("currency")) or "EUR",
            deposit=_deposit(payload),
            bedrooms=_int(_first(payload, "bedrooms", "house_informations.bedrooms", "rooms", "n_rooms")),
            bathrooms=_int(_first(payload, "bathrooms", "house_informations.bathrooms")),
            size=_number(_first(payload, "size", "size_sqm", "house_informations.size")),
            floor=_text(payload.get("floor")),
            address=_text(_first(payload, "address", "location.address", "street_address")),
            postcode=_text(_first(payload, "postcode", "zip_code", "location.addressZipCode", "zipcode")),
            city=_text(_first(payload, "city", "location.city", "city_name")),
            country=_text(_first(payload, "country", "location.country")),
            lat=_number(_first(payload, "lat", "latitude", "location.coordinates.latitude")),
            lng=_number(_first(payload, "lng", "longitude", "location.coordinates.longitude")),
            amenities=[str(a) for a in amenities if a] if isinstance(amenities, list) else [],
            images=_images(payload),
            availability_date=availability,
            furnished=_flag(payload.get("furnished")),
            bills_included=_bills_included(payload),
            minimum_stay=_int(payload.get("minimum_stay")),
            maximum_stay=_int(payload.get("maximum_stay")),
            occupation_periods=periods,
            url=_text(payload.get("url")),
            raw=payload,
        )


class ImportSummary(BaseModel):
    success: bool = True
    imported: int = 0
    updated: int = 0
    removed: int = 0
    skipped: int = 0
    total: int = 0
    errors: List[str] = Field(default_factory=list)
    skipped_details: List[str] = Field(default_factory=list)


class FeedImportRequest(BaseModel):
    feed_url: Optional[str] = None


class ScrapeImportRequest(BaseModel):
    max_listings: Optional[int] = Field(None, ge=1, le=500)


class UrlImportRequest(BaseModel):
    listing_url: Optional[str] = None


class ListingOut(BaseModel):
    id: int
    external_source: Optional[str] = None
    external_listing_id: Optional[str] = None
    agency_id: int
    title: str
    type: Optional[str] = None
    city: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    rent_monthly_eur: Optional[float] = None
    deposit_eur: Optional[float] = None
    bedrooms: Optional[int] = None
    status: str
    review_status: str
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    class Config:
        from_attributes = True
