# listing_import/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler

from . import config, importer
from .db import SessionLocal
from .errors import ImportPipelineError
from .utils import logger

scheduler = BackgroundScheduler()


def scheduled_feed_import():
    db = SessionLocal()
    try:
        summary = importer.import_from_feed(db)
        logger.info("Scheduled feed import done: %s", summary.model_dump(exclude={"skipped_details"}))
    except ImportPipelineError as e:
        logger.error("Scheduled feed import failed: %s", e)
    finally:
        db.close()


def start_scheduler(interval_hours: float = config.FEED_IMPORT_INTERVAL_HOURS) -> bool:
    if interval_hours <= 0 or scheduler.running:
        return False
    scheduler.add_job(scheduled_feed_import, "interval", hours=interval_hours, id="spacest-feed-import",
                      replace_existing=True, max_instances=1)
    scheduler.start()
    logger.info("Scheduler started, feed import every %s hours", interval_hours)
    return True


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
