# tests/conftest.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import listing_import.models  # noqa: F401
from listing_import import config
from listing_import.db import Base
from listing_import.models import Profile

MILAN_CENTRE = (45.4642, 9.19)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def agency(db):
    profile = Profile(email=config.SPACEST_AGENCY_EMAIL, user_type="agency", agency_name="Spacest")
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def make_listing():
    def _make(code, **overrides):
        item = {
            "code": code,
            "title": f"Room {code}",
            "category": "camera singola",
            "price": 700,
            "lat": MILAN_CENTRE[0],
            "lng": MILAN_CENTRE[1],
            "address": "Via Roma 1, Milano",
        }
        item.update(overrides)
        return item
    return _make
