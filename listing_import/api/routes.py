# listing_import/api/routes.py
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import crud, importer, schemas
from ..db import get_db
from ..errors import ImportPipelineError
from ..models import Profile
from ..owners import ADMIN, parse_bearer, resolve_identity
from ..utils import logger

router = APIRouter()


def get_requesting_profile(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[Profile]:
    return resolve_identity(db, parse_bearer(authorization))


def _failure(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _run(fn, *args, **kwargs):
    try:
        summary = fn(*args, **kwargs)
    except ImportPipelineError as e:
        logger.error("Import failed: %s", e)
        return _failure(str(e))
    except Exception as e:
        logger.exception("Import failed: %s", e)
        return _failure(str(e))
    return summary.model_dump()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/import/spacest")
def import_spacest_listings(
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    requesting: Optional[Profile] = Depends(get_requesting_profile),
):
    listings = payload.get("listings") if isinstance(payload, dict) else None
    if not isinstance(listings, list):
        return _failure("listings array is required")
    return _run(importer.import_direct, db, listings, requesting)


@router.post("/import/spacest/feed")
def import_spacest_feed(
    payload: Optional[schemas.FeedImportRequest] = Body(None),
    db: Session = Depends(get_db),
    requesting: Optional[Profile] = Depends(get_requesting_profile),
):
    feed_url = payload.feed_url if payload else None
    return _run(importer.import_from_feed, db, feed_url, requesting)


@router.post("/import/spacest/scrape")
def import_spacest_scrape(
    payload: Optional[schemas.ScrapeImportRequest] = Body(None),
    db: Session = Depends(get_db),
    requesting: Optional[Profile] = Depends(get_requesting_profile),
):
    max_listings = payload.max_listings if payload else None
    return _run(importer.import_from_scrape, db, max_listings, requesting)


@router.post("/import/spacest/url")
def import_spacest_url(
    payload: Optional[schemas.UrlImportRequest] = Body(None),
    db: Session = Depends(get_db),
    requesting: Optional[Profile] = Depends(get_requesting_profile),
):
    listing_url = payload.listing_url if payload else None
    return _run(importer.import_from_url, db, listing_url, requesting)


@router.delete("/import/spacest")
def delete_imported_listings(
    db: Session = Depends(get_db),
    requesting: Optional[Profile] = Depends(get_requesting_profile),
):
    if requesting is None or requesting.user_type != ADMIN:
        return _failure("Only admins can delete imported listings", status_code=403)
    deleted = crud.delete_source_listings(db, importer.SPACEST_SOURCE)
    logger.info("Admin %s deleted %d imported listings", requesting.id, deleted)
    return {"success": True, "deleted": deleted}


@router.get("/listings", response_model=List[schemas.ListingOut])
def listings(
    skip: int = 0,
    limit: int = 20,
    source: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    review_status: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None),
    max_price: Optional[float] = Query(None),
    city: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    filters = {
        "source": source,
        "type": type,
        "review_status": review_status,
        "min_price": min_price,
        "max_price": max_price,
        "city": city,
    }
    res = crud.list_listings(db, skip=skip, limit=limit, filters=filters)
    return res["items"]


@router.get("/listings/{listing_id}", response_model=schemas.ListingOut)
def get_listing(listing_id: int, db: Session = Depends(get_db)):
    obj = crud.get_listing(db, listing_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Listing not found")
    return obj
