# tests/test_crud.py
from datetime import date, timedelta

from listing_import import crud


def row(agency_id, code, source="spacest", **extra):
    data = {
        "external_source": source,
        "external_listing_id": code,
        "agency_id": agency_id,
        "title": f"Listing {code}",
        "type": "stanza",
        "rent_monthly_eur": 700,
    }
    data.update(extra)
    return data


def test_upsert_and_get(db, agency):
    obj, created = crud.upsert_listing(db, row(agency.id, "test123"))
    assert created
    assert obj.last_synced_at is not None
    fetched = crud.get_by_external_id(db, "spacest", "test123")
    assert fetched is not None
    assert fetched.title == "Listing test123"
    assert crud.get_listing(db, obj.id).id == obj.id


def test_upsert_updates_in_place(db, agency):
    first, _ = crud.upsert_listing(db, row(agency.id, "dup"))
    second, created = crud.upsert_listing(db, row(agency.id, "dup", rent_monthly_eur=800))
    assert not created
    assert second.id == first.id
    assert float(second.rent_monthly_eur) == 800


def test_same_code_from_different_sources_is_distinct(db, agency):
    crud.upsert_listing(db, row(agency.id, "42"))
    _, created = crud.upsert_listing(db, row(agency.id, "42", source="spacest_scraper"))
    assert created


def test_reconcile_source(db, agency):
    for code in ("A", "B", "C"):
        crud.upsert_listing(db, row(agency.id, code))
    assert crud.reconcile_source(db, "spacest", {"A", "C"}) == 1
    assert crud.get_by_external_id(db, "spacest", "B") is None
    assert crud.reconcile_source(db, "spacest", {"A", "C"}) == 0


def test_replace_availability_in_batches(db, agency):
    obj, _ = crud.upsert_listing(db, row(agency.id, "cal"))
    start = date(2026, 1, 1)
    rows = [{"date": start + timedelta(days=i), "is_available": i % 2 == 0} for i in range(250)]
    assert crud.replace_availability(db, obj.id, rows, batch_size=100) == 250
    days = crud.get_availability(db, obj.id)
    assert len(days) == 250
    assert days[1].is_available is False
    assert len(crud.get_availability(db, obj.id, start=start + timedelta(days=200))) == 50


def test_delete_source_listings_removes_calendar_too(db, agency):
    obj, _ = crud.upsert_listing(db, row(agency.id, "X"))
    crud.replace_availability(db, obj.id, [{"date": date(2026, 1, 1), "is_available": True}])
    crud.upsert_listing(db, row(agency.id, "Y", source="manual"))
    assert crud.delete_source_listings(db, "spacest") == 1
    assert crud.get_availability(db, obj.id) == []
    assert crud.list_listings(db)["total"] == 1


def test_list_listings_filters(db, agency):
    crud.upsert_listing(db, row(agency.id, "cheap", rent_monthly_eur=400, city="Milano"))
    crud.upsert_listing(db, row(agency.id, "dear", rent_monthly_eur=1100, city="Milano", type="bilocale"))
    res = crud.list_listings(db, filters={"max_price": 500})
    assert [o.external_listing_id for o in res["items"]] == ["cheap"]
    assert crud.list_listings(db, filters={"type": "bilocale"})["total"] == 1
    assert crud.list_listings(db, filters={"city": "mil"})["total"] == 2


def test_delete_listing(db, agency):
    obj, _ = crud.upsert_listing(db, row(agency.id, "gone"))
    assert crud.delete_listing(db, obj.id)
    assert not crud.delete_listing(db, obj.id)
