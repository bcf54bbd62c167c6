# listing_import/importer.py
"""End-to-end import runs.

A run walks the feed once, in order::

    parse -> classify -> admit -> normalize -> upsert -> availability

and finishes by reconciling the source against the ids it accepted. Only an
unresolvable owner or an unreachable feed aborts a run; every per-listing
problem is counted in the returned ``ImportSummary`` and the loop moves on.
"""
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from . import crud
from .classify import ClassificationCache, PropertyType
from .errors import InvalidListingError
from .feed import fetch_feed
from .filters import DEFAULT_CRITERIA, ImportCriteria, rejection_reason
from .models import Profile
from .normalize import build_availability, normalize
from .owners import resolve_owner
from .schemas import ExternalListing, ImportSummary
from .scrape import scrape_listing_url, scrape_listings
from .utils import cap_append, logger

SPACEST_SOURCE = "spacest"
SCRAPER_SOURCE = "spacest_scraper"

MAX_SKIP_SAMPLES = 10
MAX_ERROR_SAMPLES = 50


def _code_of(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("code") or raw.get("listing_code") or raw.get("id") or "?")
    return "?"


def run_import(
    db: Session,
    raw_listings: Iterable[Any],
    *,
    owner: Profile,
    source: str = SPACEST_SOURCE,
    criteria: ImportCriteria = DEFAULT_CRITERIA,
    now: Optional[datetime] = None,
    reconcile: bool = True,
) -> ImportSummary:
    now = now or datetime.now(timezone.utc)
    raw_listings = list(raw_listings)
    summary = ImportSummary(total=len(raw_listings))
    cache = ClassificationCache()
    seen: set = set()

    logger.info("Processing %d %s listings for owner %s", len(raw_listings), source, owner.id)

    for raw in raw_listings:
        try:
            listing = ExternalListing.from_raw(raw)
        except (InvalidListingError, ValueError) as e:
            summary.skipped += 1
            cap_append(summary.skipped_details, f"{_code_of(raw)}: {e}", MAX_SKIP_SAMPLES)
            continue

        classification, fresh = cache.classify(listing.category, listing.bedrooms, listing.price)
        if fresh:
            logger.debug(
                "Classified %r as %s (%s): %s",
                listing.category, classification.type.value,
                classification.mapped_category, classification.reasoning,
            )

        reason = rejection_reason(listing, criteria)
        if reason is None and classification.type is PropertyType.UNKNOWN:
            reason = classification.reasoning
        if reason is not None:
            summary.skipped += 1
            cap_append(summary.skipped_details, f"{listing.code}: {reason}", MAX_SKIP_SAMPLES)
            continue

        # accepted ids survive reconciliation even if the write below fails
        seen.add(listing.code)

        try:
            values = normalize(listing, owner.id, classification.mapped_category, source=source, now=now)
            obj, created = crud.upsert_listing(db, values)
        except Exception as e:
            db.rollback()
            logger.exception("Error processing listing %s: %s", listing.code, e)
            cap_append(summary.errors, f"Error processing {listing.code}: {e}", MAX_ERROR_SAMPLES)
            continue

        if created:
            summary.imported += 1
        else:
            summary.updated += 1

        if listing.occupation_periods:
            try:
                rows = build_availability(listing.occupation_periods, now.date())
                crud.replace_availability(db, obj.id, rows)
            except Exception as e:
                db.rollback()
                logger.exception("Error updating availability for listing %s: %s", obj.id, e)

    logger.info(
        "Import summary: %d imported, %d updated, %d skipped, %d errors, %d unique classifications",
        summary.imported, summary.updated, summary.skipped, len(summary.errors), len(cache),
    )
    if summary.skipped_details:
        logger.info("Sample skipped listings: %s", "; ".join(summary.skipped_details))

    if reconcile:
        summary.removed = crud.reconcile_source(db, source, seen)
        if summary.removed:
            logger.info("Removed %d %s listings no longer in the feed", summary.removed, source)
    return summary


def import_direct(
    db: Session,
    raw_listings: List[Any],
    requesting: Optional[Profile] = None,
    **kwargs,
) -> ImportSummary:
    owner = resolve_owner(db, requesting)
    return run_import(db, raw_listings, owner=owner, source=SPACEST_SOURCE, **kwargs)


def import_from_feed(
    db: Session,
    feed_url: Optional[str] = None,
    requesting: Optional[Profile] = None,
    client=None,
    **kwargs,
) -> ImportSummary:
    owner = resolve_owner(db, requesting)
    raw_listings = fetch_feed(feed_url, client=client)
    return run_import(db, raw_listings, owner=owner, source=SPACEST_SOURCE, **kwargs)


def import_from_scrape(
    db: Session,
    max_listings: Optional[int] = None,
    requesting: Optional[Profile] = None,
    **kwargs,
) -> ImportSummary:
    owner = resolve_owner(db, requesting, create_if_missing=True)
    scraped = scrape_listings(max_listings=max_listings)
    # pages that were capped or failed to load are not gone from the site
    reconcile = kwargs.pop("reconcile", True) and scraped.complete
    if not reconcile:
        logger.info("Scrape was partial, skipping reconciliation of %s listings", SCRAPER_SOURCE)
    return run_import(db, scraped.listings, owner=owner, source=SCRAPER_SOURCE, reconcile=reconcile, **kwargs)


def import_from_url(
    db: Session,
    listing_url: str,
    requesting: Optional[Profile] = None,
    **kwargs,
) -> ImportSummary:
    """Import the one listing behind ``listing_url``; other listings are left alone."""
    if not listing_url or not isinstance(listing_url, str):
        raise InvalidListingError("listing_url is required")
    owner = resolve_owner(db, requesting, create_if_missing=True)
    payload = scrape_listing_url(listing_url)
    kwargs.pop("reconcile", None)
    return run_import(db, [payload], owner=owner, source=SCRAPER_SOURCE, reconcile=False, **kwargs)
