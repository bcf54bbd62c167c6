# tests/test_importer.py
from datetime import date, datetime, timezone

import httpx
import pytest
from sqlalchemy import func, select

from listing_import import crud, importer
from listing_import.errors import FeedFetchError, InvalidListingError, OwnerResolutionError
from listing_import.filters import ImportCriteria
from listing_import.models import Listing, ListingAvailability, Profile
from listing_import.owners import get_or_create_system_account, resolve_owner
from listing_import.scrape import ScrapeResult

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def count_listings(db):
    return db.execute(select(func.count(Listing.id))).scalar_one()


def test_second_run_updates_instead_of_inserting(db, agency, make_listing):
    feed = [make_listing("A"), make_listing("B"), make_listing("C", price=50)]
    first = importer.run_import(db, feed, owner=agency, now=NOW)
    assert (first.imported, first.updated, first.skipped) == (2, 0, 1)

    second = importer.run_import(db, feed, owner=agency, now=NOW)
    assert (second.imported, second.updated, second.removed) == (0, 2, 0)
    assert count_listings(db) == 2


def test_listing_missing_from_feed_is_removed(db, agency, make_listing):
    importer.run_import(db, [make_listing("A"), make_listing("B"), make_listing("C")], owner=agency, now=NOW)
    summary = importer.run_import(db, [make_listing("A"), make_listing("C")], owner=agency, now=NOW)
    assert summary.removed == 1
    assert crud.get_by_external_id(db, "spacest", "B") is None
    assert crud.get_by_external_id(db, "spacest", "A") is not None


def test_reconcile_only_touches_its_own_source(db, agency, make_listing):
    importer.run_import(db, [make_listing("S1")], owner=agency, source=importer.SCRAPER_SOURCE, now=NOW)
    summary = importer.run_import(db, [make_listing("A")], owner=agency, now=NOW)
    assert summary.removed == 0
    assert crud.get_by_external_id(db, importer.SCRAPER_SOURCE, "S1") is not None


def test_complete_scrape_reconciles_scraper_rows(db, agency, make_listing, monkeypatch):
    monkeypatch.setattr(importer, "scrape_listings", lambda max_listings=None: ScrapeResult([make_listing("1001"), make_listing("1002")]))
    importer.import_from_scrape(db)

    monkeypatch.setattr(importer, "scrape_listings", lambda max_listings=None: ScrapeResult([make_listing("1001")]))
    summary = importer.import_from_scrape(db)
    assert summary.removed == 1
    assert crud.get_by_external_id(db, importer.SCRAPER_SOURCE, "1002") is None


def test_partial_scrape_keeps_listings_it_could_not_reach(db, agency, make_listing, monkeypatch):
    monkeypatch.setattr(importer, "scrape_listings", lambda max_listings=None: ScrapeResult([make_listing("1001"), make_listing("1002")]))
    importer.import_from_scrape(db)

    # page 1002 failed to load, or the index was capped before it
    monkeypatch.setattr(importer, "scrape_listings", lambda max_listings=None: ScrapeResult([make_listing("1001")], complete=False))
    summary = importer.import_from_scrape(db, max_listings=1)
    assert (summary.updated, summary.removed) == (1, 0)
    assert crud.get_by_external_id(db, importer.SCRAPER_SOURCE, "1002") is not None


def test_import_from_url_leaves_other_listings_alone(db, agency, make_listing, monkeypatch):
    importer.run_import(db, [make_listing("1001"), make_listing("1002")], owner=agency, source=importer.SCRAPER_SOURCE, now=NOW)
    urls = []

    def fake_scrape(url):
        urls.append(url)
        return make_listing("2001")

    monkeypatch.setattr(importer, "scrape_listing_url", fake_scrape)
    summary = importer.import_from_url(db, "https://spacest.com/rent-listing/2001")
    assert (summary.imported, summary.removed, summary.total) == (1, 0, 1)
    assert urls == ["https://spacest.com/rent-listing/2001"]
    assert crud.get_by_external_id(db, importer.SCRAPER_SOURCE, "1002") is not None


def test_import_from_url_requires_url(db, agency):
    with pytest.raises(InvalidListingError):
        importer.import_from_url(db, None)


def test_end_to_end_feed(db, agency, make_listing):
    importer.run_import(db, [make_listing("KEEP-1", price=650)], owner=agency, now=NOW)

    feed = [
        make_listing("CHEAP-1", price=120),
        make_listing("ROOM-1", category="camera singola", lat=45.4781, lng=9.2274, title=None),
        make_listing("KEEP-1", price=720),
    ]
    summary = importer.run_import(db, feed, owner=agency, now=NOW)

    assert (summary.imported, summary.updated, summary.skipped, summary.removed, summary.total) == (1, 1, 1, 0, 3)
    assert summary.skipped_details == ["CHEAP-1: Price 120€ outside 300-1200€ range"]

    room = crud.get_by_external_id(db, "spacest", "ROOM-1")
    assert room.type == "stanza"
    assert room.title == "camera singola in Milano"
    assert room.status == "DRAFT" and room.review_status == "pending_review"
    assert room.agency_id == agency.id

    kept = crud.get_by_external_id(db, "spacest", "KEEP-1")
    assert float(kept.rent_monthly_eur) == 720
    assert count_listings(db) == 2


def test_skip_sample_is_capped(db, agency, make_listing):
    feed = [make_listing(f"LOW-{i}", price=10) for i in range(15)]
    summary = importer.run_import(db, feed, owner=agency, now=NOW)
    assert summary.skipped == 15
    assert len(summary.skipped_details) == importer.MAX_SKIP_SAMPLES


def test_invalid_payloads_are_skipped(db, agency, make_listing):
    summary = importer.run_import(db, [{"price": 700}, "garbage", make_listing("OK")], owner=agency, now=NOW)
    assert summary.skipped == 2
    assert summary.imported == 1


def test_unknown_classification_is_not_persisted(db, agency, make_listing):
    criteria = ImportCriteria(price_min=0, price_max=100000)
    summary = importer.run_import(
        db, [make_listing("U", category="", price=50000)], owner=agency, criteria=criteria, now=NOW,
    )
    assert summary.skipped == 1
    assert summary.skipped_details[0].startswith("U: Unclassified")
    assert count_listings(db) == 0


def test_write_failure_is_counted_and_run_continues(db, agency, make_listing, monkeypatch):
    importer.run_import(db, [make_listing("A"), make_listing("B")], owner=agency, now=NOW)
    real_upsert = crud.upsert_listing

    def flaky_upsert(session, values):
        if values["external_listing_id"] == "A":
            raise RuntimeError("connection reset")
        return real_upsert(session, values)

    monkeypatch.setattr(crud, "upsert_listing", flaky_upsert)
    summary = importer.run_import(db, [make_listing("A"), make_listing("B")], owner=agency, now=NOW)

    assert summary.updated == 1
    assert summary.errors == ["Error processing A: connection reset"]
    # a failed write must not make reconciliation drop the listing
    assert summary.removed == 0
    assert crud.get_by_external_id(db, "spacest", "A") is not None


def test_occupation_periods_fill_the_calendar(db, agency, make_listing):
    item = make_listing("CAL", occupation_periods=[{"from": "2026-03-10", "to": "2026-03-20"}])
    importer.run_import(db, [item], owner=agency, now=NOW)
    listing = crud.get_by_external_id(db, "spacest", "CAL")

    days = crud.get_availability(db, listing.id)
    assert len(days) == 365
    assert days[0].date == date(2026, 3, 1)
    assert sum(1 for d in days if not d.is_available) == 11

    # re-import replaces rather than appends
    importer.run_import(db, [item], owner=agency, now=NOW)
    total = db.execute(select(func.count(ListingAvailability.id))).scalar_one()
    assert total == 365


def test_direct_import_without_owner_is_fatal(db, make_listing):
    with pytest.raises(OwnerResolutionError):
        importer.import_direct(db, [make_listing("A")], now=NOW)
    assert count_listings(db) == 0


def test_direct_import_falls_back_to_requesting_profile(db, make_listing):
    admin = Profile(email="admin@flat2study.com", user_type="admin", user_id="u-1", access_token="tok")
    db.add(admin)
    db.commit()
    summary = importer.import_direct(db, [make_listing("A")], requesting=admin, now=NOW)
    assert summary.imported == 1
    assert crud.get_by_external_id(db, "spacest", "A").agency_id == admin.id


def test_dedicated_account_wins_over_requesting_profile(db, agency):
    other = Profile(email="someone@example.com", user_type="private")
    db.add(other)
    db.commit()
    assert resolve_owner(db, other).id == agency.id


def test_get_or_create_system_account_is_idempotent(db):
    first = get_or_create_system_account(db, "bot@example.com", "Bot")
    second = get_or_create_system_account(db, "bot@example.com", "Bot")
    assert first.id == second.id
    assert resolve_owner(db, None, create_if_missing=True, email="bot@example.com").id == first.id


def test_import_from_feed_uses_http_feed(db, agency, make_listing):
    def handler(request):
        assert request.url.path == "/feed.json"
        return httpx.Response(200, json={"data": [make_listing("F1"), make_listing("F2")]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    summary = importer.import_from_feed(db, "https://feed.test/feed.json", client=client, now=NOW)
    assert summary.imported == 2
    assert summary.total == 2


def test_feed_http_error_is_fatal(db, agency):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    with pytest.raises(FeedFetchError):
        importer.import_from_feed(db, "https://feed.test/feed.json", client=client)
