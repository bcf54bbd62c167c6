# listing_import/utils.py
"""Shared logging setup and the retry decorator used by the fetch adapters."""
import logging
import time
from functools import wraps
from .config import LOG_LEVEL

def get_logger(name=__name__):
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, LOG_LEVEL, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("listing-import")

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    def deco_retry(f):
        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Retryable error in %s: %s, retrying in %s sec", f.__name__, e, mdelay)
                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry

def cap_append(items, value, limit):
    """Append ``value`` unless ``items`` already holds ``limit`` entries."""
    if len(items) < limit:
        items.append(value)

def normalize_number(raw):
    """Turn ``"1.200"``, ``"1,200"`` or ``"850,50"`` into a ``float()``-ready string."""
    if "," in raw and "." in raw:
        if raw.rfind(",") > raw.rfind("."):
            return raw.replace(".", "").replace(",", ".")
        return raw.replace(",", "")
    for sep in (",", "."):
        if sep in raw:
            head, _, tail = raw.rpartition(sep)
            # a three-digit tail or repeated separator means thousands
            if len(tail) == 3 or raw.count(sep) > 1:
                return raw.replace(sep, "")
            return head.replace(sep, "") + "." + tail
    return raw
