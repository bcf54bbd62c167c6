# listing_import/classify.py
"""Property-type classification for imported listings.

A listing is mapped onto one of four property types and onto the Italian
category codes the marketplace uses (``stanza``, ``monolocale``,
``bilocale``, ``trilocale``, ``appartamento``). Rules are checked in order
and the first match wins:

1. one bedroom, or a room / shared-living keyword -> single room
2. a studio keyword, or no bedroom count with a price up to 1500 -> studio
3. an apartment keyword -> multi-bedroom apartment, inferring the bedroom
   count from the price (900 per bedroom, at least 2) when it is missing
4. two or more bedrooms -> multi-bedroom apartment
5. anything else -> unknown, with an empty category code

``classify`` is pure; ``ClassificationCache`` memoizes it for one import run.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

STUDIO_MAX_PRICE = 1500
PRICE_PER_BEDROOM = 900
MIN_INFERRED_BEDROOMS = 2

ROOM_CATEGORY = "stanza"
STUDIO_CATEGORY = "monolocale"
APARTMENT_CATEGORY = "appartamento"

SINGLE_ROOM_KEYWORDS = (
    # en
    "room", "single room", "private room", "bedroom", "double room", "bedsit",
    # it
    "stanza", "camera", "camera singola", "camera doppia", "posto letto",
    # es
    "habitación", "habitacion", "cuarto",
    # fr
    "chambre", "chambre privée", "chambre simple",
    # pt
    "quarto", "quarto individual",
    # de
    "zimmer", "einzelzimmer",
)

SHARED_KEYWORDS = (
    "shared", "coliving", "co-living", "flatshare", "houseshare",
    "condiviso", "condivisa", "compartido", "compartida",
    "partagé", "colocation", "wg-zimmer", "wohngemeinschaft",
)

STUDIO_KEYWORDS = (
    "studio", "studio apartment", "efficiency", "bachelor",
    "monolocale", "miniappartamento", "estudio", "studio meublé",
    "kitchenette", "apartamento tipo estudio", "kitnet",
)

APARTMENT_KEYWORDS = (
    "apartment", "flat", "condo", "unit",
    "appartamento", "bilocale", "trilocale", "quadrilocale", "attico",
    "apartamento", "piso", "departamento",
    "appartement", "wohnung",
)


class PropertyType(str, Enum):
    SINGLE_ROOM = "single_room"
    STUDIO = "studio"
    MULTI_BEDROOM_APARTMENT = "multi_bedroom_apartment"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Classification:
    type: PropertyType
    mapped_category: str
    reasoning: str = ""


def _has_any(text: str, keywords) -> bool:
    return any(kw in text for kw in keywords)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def category_for_bedrooms(bedrooms: int) -> str:
    if bedrooms == 2:
        return "bilocale"
    if bedrooms == 3:
        return "trilocale"
    return APARTMENT_CATEGORY


def infer_bedrooms(price: float) -> int:
    return max(MIN_INFERRED_BEDROOMS, _round_half_up(price / PRICE_PER_BEDROOM))


def classify(category: Optional[str], bedrooms: Optional[int], price: Optional[float]) -> Classification:
    label = (category or "").lower().strip()
    bedrooms = bedrooms or 0
    price = price or 0

    if bedrooms == 1 or _has_any(label, SINGLE_ROOM_KEYWORDS) or _has_any(label, SHARED_KEYWORDS):
        return Classification(
            PropertyType.SINGLE_ROOM, ROOM_CATEGORY,
            f'Single room ({bedrooms} bed, "{category or ""}")',
        )

    if _has_any(label, STUDIO_KEYWORDS) or (bedrooms == 0 and 0 < price <= STUDIO_MAX_PRICE):
        return Classification(
            PropertyType.STUDIO, STUDIO_CATEGORY,
            f'Studio ({bedrooms} bed, {price:g}, "{category or ""}")',
        )

    if _has_any(label, APARTMENT_KEYWORDS):
        if bedrooms == 0 and price > STUDIO_MAX_PRICE:
            inferred = infer_bedrooms(price)
            return Classification(
                PropertyType.MULTI_BEDROOM_APARTMENT, category_for_bedrooms(inferred),
                f'Apartment with {inferred} inferred beds from price {price:g} ("{category}")',
            )
        if bedrooms >= 2:
            return Classification(
                PropertyType.MULTI_BEDROOM_APARTMENT, category_for_bedrooms(bedrooms),
                f'{bedrooms}-bed apartment ("{category}")',
            )

    if bedrooms >= 2:
        mapped = "bilocale" if bedrooms == 2 else APARTMENT_CATEGORY
        return Classification(
            PropertyType.MULTI_BEDROOM_APARTMENT, mapped,
            f"Default apartment ({bedrooms} bed)",
        )

    return Classification(
        PropertyType.UNKNOWN, "",
        f'Unclassified ({bedrooms} bed, {price:g}, "{category or ""}")',
    )


class ClassificationCache:
    """Per-run memo of ``classify`` results keyed by its arguments."""

    def __init__(self):
        self._entries: Dict[Tuple[str, int, float], Classification] = {}
        self.hits = 0

    def __len__(self):
        return len(self._entries)

    def classify(self, category: Optional[str], bedrooms: Optional[int], price: Optional[float]) -> Tuple[Classification, bool]:
        """Return ``(classification, fresh)``; ``fresh`` is False on a cache hit."""
        key = (category or "", bedrooms or 0, float(price or 0))
        hit = self._entries.get(key)
        if hit is not None:
            self.hits += 1
            return hit, False
        result = classify(category, bedrooms, price)
        self._entries[key] = result
        return result, True
