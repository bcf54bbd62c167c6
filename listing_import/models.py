# listing_import/models.py
"""SQLAlchemy ORM models for persisted entities.

``Listing`` rows created by the importer always carry ``external_source`` and
``external_listing_id``; the pair is the natural key used for upserts and
reconciliation. Listings created through the UI leave both columns null.
"""
from sqlalchemy import (
    Column, Integer, Text, Numeric, Float, Boolean, Date, TIMESTAMP, ForeignKey,
    UniqueConstraint, JSON, func, Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from .db import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

class Profile(Base):
    __tablename__ = "profiles"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, unique=True)
    email = Column(Text, unique=True, nullable=False)
    user_type = Column(Text, nullable=False, default="private")
    agency_name = Column(Text)
    phone = Column(Text)
    access_token = Column(Text, unique=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    listings = relationship("Listing", back_populates="agency")


class Listing(Base):
    __tablename__ = "listings"
    id = Column(Integer, primary_key=True, index=True)
    external_source = Column(Text)
    external_listing_id = Column(Text)
    agency_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    type = Column(Text)
    description = Column(Text, default="")
    address_line = Column(Text, default="")
    postcode = Column(Text)
    city = Column(Text)
    country = Column(Text)
    lat = Column(Float)
    lng = Column(Float)
    rent_monthly_eur = Column(Numeric(10, 2))
    deposit_eur = Column(Numeric(10, 2))
    bills_included = Column(Boolean, default=False)
    furnished = Column(Boolean, default=True)
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)
    floor = Column(Text)
    size_sqm = Column(Float)
    amenities = Column(JSONType)
    images = Column(JSONType)
    availability_date = Column(Date)
    minimum_stay_days = Column(Integer)
    maximum_stay_days = Column(Integer)
    status = Column(Text, nullable=False, default="DRAFT")
    review_status = Column(Text, nullable=False, default="pending_review")
    raw_json = Column(JSONType)
    last_synced_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    agency = relationship("Profile", back_populates="listings")
    availability = relationship(
        "ListingAvailability", back_populates="listing", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("external_source", "external_listing_id", name="uq_listing_external"),
    )


class ListingAvailability(Base):
    __tablename__ = "listing_availability"
    id = Column(Integer, primary_key=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    listing = relationship("Listing", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("listing_id", "date", name="uq_availability_listing_date"),
    )

Index("idx_listings_rent", Listing.rent_monthly_eur)
Index("idx_listings_source", Listing.external_source)
