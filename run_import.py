import json
import sys

from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


def load_listings(path):
    """Read a feed dump saved to disk; accepts the same shapes as the live feed."""
    from listing_import.feed import unwrap_feed

    with open(path, "r", encoding="utf-8") as fh:
        return unwrap_feed(json.load(fh))


def print_summary(summary):
    print(f"Imported: {summary.imported}")
    print(f"Updated:  {summary.updated}")
    print(f"Removed:  {summary.removed}")
    print(f"Skipped:  {summary.skipped}")
    print(f"Total processed: {summary.total}")
    for line in summary.skipped_details:
        print(f"  skipped {line}")
    for line in summary.errors:
        print(f"  error {line}")


if __name__ == "__main__":
    from listing_import.db import Base, SessionLocal, engine
    from listing_import.errors import ImportPipelineError
    from listing_import import importer
    import listing_import.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if len(sys.argv) > 1:
            listings = load_listings(sys.argv[1])
            print(f"Found {len(listings)} listings in {sys.argv[1]}")
            summary = importer.import_direct(db, listings)
        else:
            print("Fetching the configured feed...")
            summary = importer.import_from_feed(db)
    except ImportPipelineError as e:
        raise SystemExit(f"Import failed: {e}")
    finally:
        db.close()

    print_summary(summary)
