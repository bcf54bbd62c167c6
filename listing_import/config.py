# listing_import/config.py
"""Environment-driven settings for the import service.

Everything is read once at import time after ``load_dotenv()``; callers that
need different values (tests, the CLI) pass explicit arguments instead of
mutating this module.
"""
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL") or "sqlite:///./listing_import.db"
# SQLAlchemy 2.x doesn't accept 'postgres://'
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 10))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SPACEST_FEED_URL = os.getenv(
    "SPACEST_FEED_URL",
    "https://roomless-file.s3.us-east-2.amazonaws.com/feed-partner/example_feed.json",
)
SPACEST_LISTINGS_URL = os.getenv("SPACEST_LISTINGS_URL", "https://spacest.com/rent-listings/italy/milan")
SPACEST_AGENCY_EMAIL = os.getenv("SPACEST_AGENCY_EMAIL", "spacest-listings@flat2study.com")
SPACEST_AGENCY_NAME = os.getenv("SPACEST_AGENCY_NAME", "Spacest")

IMPORT_PRICE_MIN = float(os.getenv("IMPORT_PRICE_MIN", 300))
IMPORT_PRICE_MAX = float(os.getenv("IMPORT_PRICE_MAX", 1200))
DEFAULT_DEPOSIT_MONTHS = float(os.getenv("DEFAULT_DEPOSIT_MONTHS", 2))
EUR_USD_RATE = float(os.getenv("EUR_USD_RATE", 1.06))

HEADLESS = os.getenv("HEADLESS", "1") == "1"
SCRAPE_MAX_ITEMS = int(os.getenv("SCRAPE_MAX_ITEMS", "20"))
SCRAPE_DELAY_SECONDS = float(os.getenv("SCRAPE_DELAY_SECONDS", "0.4"))
USER_AGENT = os.getenv("SCRAPE_USER_AGENT", "Flat2StudyScraper/1.0")

# unset or 0 disables the background feed import
FEED_IMPORT_INTERVAL_HOURS = float(os.getenv("FEED_IMPORT_INTERVAL_HOURS", "0") or 0)
