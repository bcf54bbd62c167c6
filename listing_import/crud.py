# listing_import/crud.py
"""CRUD operations for imported ``Listing`` rows.

Upserts and deletes go through the natural key
(``external_source``, ``external_listing_id``); every helper commits its own
work so a failure on one listing never rolls back another.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.orm import Session

from .models import Listing, ListingAvailability

AVAILABILITY_BATCH_SIZE = 100

def get_by_external_id(db: Session, source: str, external_id: str) -> Optional[Listing]:
    stmt = select(Listing).where(
        Listing.external_source == source,
        Listing.external_listing_id == external_id,
    )
    return db.execute(stmt).scalar_one_or_none()

def upsert_listing(db: Session, data: Dict[str, Any]) -> Tuple[Listing, bool]:
    """Insert or update by natural key; returns ``(listing, created)``."""
    values = dict(data)
    values.setdefault("last_synced_at", datetime.now(timezone.utc))
    existing = get_by_external_id(db, values["external_source"], values["external_listing_id"])
    if existing is not None:
        for k, v in values.items():
            setattr(existing, k, v)
        db.commit()
        db.refresh(existing)
        return existing, False
    obj = Listing(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj, True

def replace_availability(db: Session, listing_id: int, rows: List[Dict[str, Any]], batch_size: int = AVAILABILITY_BATCH_SIZE) -> int:
    db.execute(delete(ListingAvailability).where(ListingAvailability.listing_id == listing_id))
    for i in range(0, len(rows), batch_size):
        batch = [dict(r, listing_id=listing_id) for r in rows[i:i + batch_size]]
        db.execute(insert(ListingAvailability), batch)
    db.commit()
    return len(rows)

def get_availability(db: Session, listing_id: int, start: Optional[date] = None) -> List[ListingAvailability]:
    stmt = select(ListingAvailability).where(ListingAvailability.listing_id == listing_id)
    if start is not None:
        stmt = stmt.where(ListingAvailability.date >= start)
    return list(db.execute(stmt.order_by(ListingAvailability.date)).scalars())

def _delete_ids(db: Session, ids: List[int]) -> int:
    if not ids:
        return 0
    db.execute(delete(ListingAvailability).where(ListingAvailability.listing_id.in_(ids)))
    db.execute(delete(Listing).where(Listing.id.in_(ids)))
    db.commit()
    return len(ids)

def reconcile_source(db: Session, source: str, seen_ids: Iterable[str]) -> int:
    """Delete listings of ``source`` whose external id is not in ``seen_ids``."""
    seen = set(seen_ids)
    rows = db.execute(
        select(Listing.id, Listing.external_listing_id).where(
            Listing.external_source == source,
            Listing.external_listing_id.is_not(None),
        )
    ).all()
    stale = [row.id for row in rows if row.external_listing_id not in seen]
    return _delete_ids(db, stale)

def delete_source_listings(db: Session, source: str) -> int:
    ids = list(db.execute(select(Listing.id).where(Listing.external_source == source)).scalars())
    return _delete_ids(db, ids)

def get_listing(db: Session, listing_id: int) -> Optional[Listing]:
    return db.get(Listing, listing_id)

def list_listings(db: Session, skip: int = 0, limit: int = 50, filters: Dict = None):
    q = db.query(Listing)
    if filters:
        conds = []
        if filters.get("source"):
            conds.append(Listing.external_source == filters["source"])
        if filters.get("type"):
            conds.append(Listing.type == filters["type"])
        if filters.get("review_status"):
            conds.append(Listing.review_status == filters["review_status"])
        if filters.get("min_price") is not None:
            conds.append(Listing.rent_monthly_eur >= filters["min_price"])
        if filters.get("max_price") is not None:
            conds.append(Listing.rent_monthly_eur <= filters["max_price"])
        if filters.get("city"):
            conds.append(Listing.city.ilike(f"%{filters['city']}%"))
        if conds:
            q = q.filter(and_(*conds))
    total = q.count()
    items = q.order_by(Listing.id).offset(skip).limit(limit).all()
    return {"total": total, "items": items}

def delete_listing(db: Session, listing_id: int) -> bool:
    if get_listing(db, listing_id) is None:
        return False
    _delete_ids(db, [listing_id])
    return True
