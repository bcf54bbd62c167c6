# listing_import/feed.py
import json
from typing import Any, Dict, List, Optional

import httpx

from . import config
from .errors import FeedFetchError
from .utils import logger, retry

FEED_TIMEOUT = 30


def unwrap_feed(data: Any) -> List[Dict[str, Any]]:
    """Feeds arrive as a bare array or nested under ``listings``/``data``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("listings", "data"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


@retry(httpx.TransportError, tries=3, delay=1, backoff=2)
def _get(client: httpx.Client, url: str) -> httpx.Response:
    return client.get(url)


def fetch_feed(url: Optional[str] = None, client: Optional[httpx.Client] = None) -> List[Dict[str, Any]]:
    url = (url or "").strip() or config.SPACEST_FEED_URL
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=FEED_TIMEOUT, follow_redirects=True,
                              headers={"User-Agent": config.USER_AGENT})
    try:
        logger.info("Fetching feed %s", url)
        resp = _get(client, url)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        raise FeedFetchError(f"Failed to fetch feed: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise FeedFetchError(f"Failed to fetch feed: {e}") from e
    except json.JSONDecodeError as e:
        raise FeedFetchError(f"Feed is not valid JSON: {e}") from e
    finally:
        if owns_client:
            client.close()

    logger.debug("Feed data structure: %s", json.dumps(data)[:500])
    listings = unwrap_feed(data)
    logger.info("Found %d listings in feed", len(listings))
    return listings
