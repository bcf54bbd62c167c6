# listing_import/scrape.py
"""HTML fallback for when no structured feed is available.

The scraper only turns listing pages into raw payloads shaped like feed
entries; classification, filtering and persistence happen in the importer
exactly as for the JSON feed.
"""
import json
import re
from dataclasses import dataclass, field
from time import sleep
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.sync_api import sync_playwright, TimeoutError as PWTimeout

from . import config
from .errors import FeedFetchError
from .utils import logger, normalize_number, retry

# try to detect available parser; prefer lxml if installed
try:
    import lxml  # type: ignore # noqa: F401
    _bs_parser = "lxml"
except Exception:
    _bs_parser = "html.parser"

LISTING_PATH_MARKERS = ("/listing", "/rent-listing", "/rent/")
CODE_META_NAMES = ("listing_code", "listing-code", "listingcode", "listingid")
CODE_DATA_ATTRS = ("data-listing-code", "data-listingid", "data-id", "data-code")

PRICE_RE = re.compile(
    r"(?:€|\bEUR\b|\$)\s*\d[\d.,]*(?:\s*/\s*month|\s*/\s*m\b| per month)?"
    r"|\d[\d.,]*\s*(?:€|\bEUR\b)",
    re.I,
)
ROOMS_RE = re.compile(r"(\d)\s*(?:rooms?|camera|camere|beds?)\b", re.I)
NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "uno": 1, "due": 2, "tre": 3, "quattro": 4, "cinque": 5, "sei": 6,
}


def parse_price_string(s: str) -> Tuple[Optional[float], Optional[str]]:
    """Parse ``"1.200 € / month"`` or ``"$1,200"`` into ``(value, currency)``."""
    if not s:
        return None, None
    s = s.strip().replace("\xa0", " ")
    s = re.sub(r"^from\s+", "", s, flags=re.I)
    m = re.search(r"\d[\d.,]*", s)
    if not m:
        return None, None
    try:
        value = float(normalize_number(m.group(0).rstrip(".,")))
    except ValueError:
        return None, None
    currency = "USD" if "$" in s else "EUR"
    return value, currency


def parse_rooms_from_text(s: str) -> Optional[int]:
    if not s:
        return None
    s = s.lower()
    m = re.search(r"\b(\d{1,2})\b", s)
    if m and 1 <= int(m.group(1)) <= 10:
        return int(m.group(1))
    for word, num in NUMBER_WORDS.items():
        if re.search(rf"\b{word}\b", s):
            return num
    return None


def gather_listing_links(html: str, base_url: str) -> List[str]:
    soup = BeautifulSoup(html, _bs_parser)
    links: Dict[str, None] = {}
    for a in soup.find_all("a", href=True):
        href = a["href"]
        if any(marker in href for marker in LISTING_PATH_MARKERS):
            links[urljoin(base_url, href)] = None
    return list(links)


def extract_listing_code(soup: BeautifulSoup, page_url: str) -> Optional[str]:
    for meta in soup.find_all("meta"):
        name = (meta.get("name") or "").lower()
        if name in CODE_META_NAMES and meta.get("content"):
            return meta["content"].strip()
    for attr in CODE_DATA_ATTRS:
        el = soup.find(attrs={attr: True})
        if el is not None and el.get(attr):
            return el[attr].strip()
    m = re.search(r"/listings?/.*?([0-9]{3,})", page_url)
    if m:
        return m.group(1)
    text = soup.get_text(" ", strip=True)
    m = re.search(r"listing[_\- ]?code[:\s]*([0-9]{3,})", text, re.I)
    if m:
        return m.group(1)
    m = re.search(r"\b([0-9]{4,7})\b", text)
    return m.group(1) if m else None


def extract_price_and_rooms(soup: BeautifulSoup) -> Tuple[Optional[float], Optional[str], Optional[int]]:
    text = soup.get_text(" ", strip=True)
    price, currency = None, None
    m = PRICE_RE.search(text)
    if m:
        price, currency = parse_price_string(m.group(0))
    rm = ROOMS_RE.search(text)
    rooms = int(rm.group(1)) if rm else parse_rooms_from_text(text)
    return price, currency, rooms


def _float(val) -> Optional[float]:
    try:
        return float(str(val).strip())
    except (TypeError, ValueError):
        return None


def _find_geo(node: Any) -> Optional[Tuple[float, float]]:
    if isinstance(node, dict):
        geo = node.get("geo")
        if isinstance(geo, dict):
            lat, lng = _float(geo.get("latitude")), _float(geo.get("longitude"))
            if lat is not None and lng is not None:
                return lat, lng
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None
    for child in children:
        found = _find_geo(child)
        if found:
            return found
    return None


def extract_coordinates(soup: BeautifulSoup) -> Tuple[Optional[float], Optional[float]]:
    lat = soup.find("meta", property="place:location:latitude")
    lng = soup.find("meta", property="place:location:longitude")
    if lat is not None and lng is not None:
        return _float(lat.get("content")), _float(lng.get("content"))

    for name, sep in (("geo.position", ";"), ("ICBM", ",")):
        meta = soup.find("meta", attrs={"name": name})
        if meta is not None and sep in (meta.get("content") or ""):
            a, b = meta["content"].split(sep, 1)
            return _float(a), _float(b)

    for lat_attr, lng_attr in (("data-lat", "data-lng"), ("data-latitude", "data-longitude")):
        el = soup.find(attrs={lat_attr: True, lng_attr: True})
        if el is not None:
            return _float(el[lat_attr]), _float(el[lng_attr])

    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        found = _find_geo(data)
        if found:
            return found
    return None, None


def parse_listing_page(html: str, url: str, eur_usd: float = config.EUR_USD_RATE) -> Optional[Dict[str, Any]]:
    """Build a feed-shaped payload from one listing page, or None without a code."""
    soup = BeautifulSoup(html, _bs_parser)
    code = extract_listing_code(soup, url)
    if not code:
        return None
    title = soup.find("meta", property="og:title")
    title = title["content"].strip() if title and title.get("content") else (
        soup.title.string.strip() if soup.title and soup.title.string else None
    )
    price, currency, rooms = extract_price_and_rooms(soup)
    if price is not None and currency == "USD":
        price = round(price / eur_usd, 2)
    lat, lng = extract_coordinates(soup)
    return {
        "code": code,
        "url": url,
        "title": title,
        "category": title,
        "price": price,
        "currency": "EUR",
        "bedrooms": rooms,
        "lat": lat,
        "lng": lng,
    }


@retry(Exception, tries=3, delay=1, backoff=2)
def fetch_url_content(page, url):
    resp = page.goto(url, timeout=60000)
    if resp is not None and not resp.ok:
        raise RuntimeError(f"HTTP {resp.status} for {url}")
    return page.content()


@dataclass
class ScrapeResult:
    listings: List[Dict[str, Any]] = field(default_factory=list)
    # False when the index was cut at max_listings or a page could not be read
    complete: bool = True


def scrape_listings(max_listings: Optional[int] = None, index_url: Optional[str] = None) -> ScrapeResult:
    max_listings = max_listings or config.SCRAPE_MAX_ITEMS
    index_url = index_url or config.SPACEST_LISTINGS_URL
    result = ScrapeResult()
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=config.HEADLESS)
        context = browser.new_context(user_agent=config.USER_AGENT)
        page = context.new_page()
        try:
            try:
                index_html = fetch_url_content(page, index_url)
            except Exception as e:
                raise FeedFetchError(f"Could not fetch listings index page: {e}") from e

            all_links = gather_listing_links(index_html, index_url)
            links = all_links[:max_listings]
            if len(all_links) > len(links):
                logger.info("Capped %d candidate urls at %d", len(all_links), max_listings)
                result.complete = False
            logger.info("Found %d candidate urls on %s", len(links), index_url)
            for i, link in enumerate(links):
                logger.info("Processing (%d/%d): %s", i + 1, len(links), link)
                try:
                    payload = parse_listing_page(fetch_url_content(page, link), link)
                    if payload is None:
                        logger.warning("No listing code found on %s", link)
                        result.complete = False
                    else:
                        result.listings.append(payload)
                except PWTimeout as e:
                    logger.warning("Timeout on %s: %s", link, e)
                    result.complete = False
                except Exception as e:
                    logger.exception("Failed to scrape %s: %s", link, e)
                    result.complete = False
                if i < len(links) - 1:
                    sleep(config.SCRAPE_DELAY_SECONDS)
        finally:
            context.close()
            browser.close()
    logger.info("Scraped %d listing pages (complete: %s)", len(result.listings), result.complete)
    return result


def scrape_listing_url(url: str) -> Dict[str, Any]:
    """Fetch and parse a single listing page."""
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=config.HEADLESS)
        context = browser.new_context(user_agent=config.USER_AGENT)
        page = context.new_page()
        try:
            try:
                html = fetch_url_content(page, url)
            except Exception as e:
                raise FeedFetchError(f"Could not fetch listing page {url}: {e}") from e
        finally:
            context.close()
            browser.close()
    payload = parse_listing_page(html, url)
    if payload is None:
        raise FeedFetchError(f"No listing code found on {url}")
    return payload
