"""Oracle card catalog loader + helpers.

- Loads the catalog JSON from oracle/data/cards.json
- Provides: get_catalog(), get_card(name), pick_random_card(), get_card_image_path(card)

The catalog is read-only once loaded and is shared freely between requests.
"""

from __future__ import annotations

import json
import random
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from .models import Card
from .utils.rng import draw_independent


DATA_PATH = Path(__file__).resolve().parent / "data" / "cards.json"

MAJOR_ARCANA = "Major Arcana"
MAJOR_ARCANA_MAX = 21


class CatalogError(RuntimeError):
    pass


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise CatalogError(f"Card catalog not found at: {path}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in {path}: {e}") from e

    if "cards" not in data or not isinstance(data["cards"], list) or not data["cards"]:
        raise CatalogError("Card catalog must contain a non-empty 'cards' list.")
    return data


def load_catalog(path: Path = DATA_PATH) -> Tuple[Card, ...]:
    data = _load_json(path)

    cards = []
    for raw in data["cards"]:
        try:
            cards.append(Card(**raw))
        except (TypeError, ValidationError) as e:
            raise CatalogError(f"Invalid card entry {raw!r}: {e}") from e

    validate_catalog(cards)
    return tuple(cards)


def validate_catalog(cards) -> None:
    names = [c.name for c in cards]
    if len(names) != len(set(names)):
        raise CatalogError("Duplicate card names detected.")

    for c in cards:
        if c.suit == MAJOR_ARCANA:
            if c.number > MAJOR_ARCANA_MAX:
                raise CatalogError(f"Card {c.name} has invalid number {c.number}")
        elif c.number < 1:
            raise CatalogError(f"Card {c.name} has invalid number {c.number}")


_CATALOG_CACHE: Optional[Tuple[Card, ...]] = None


def get_catalog() -> Tuple[Card, ...]:
    global _CATALOG_CACHE
    if _CATALOG_CACHE is None:
        _CATALOG_CACHE = load_catalog()
    return _CATALOG_CACHE


def get_card(name: str) -> Card:
    wanted = (name or "").strip().lower()
    for c in get_catalog():
        if c.name.lower() == wanted:
            return c
    raise CatalogError(f"Unknown card: {name}")


def pick_random_card(rng: Optional[random.Random] = None) -> Card:
    """Pick one card uniformly at random from the catalog."""
    return draw_independent(get_catalog(), 1, rng)[0]


def get_card_image_path(card: Card) -> str:
    """Image filename for a card.

    "The Fool" -> "fool.jpg", "Ace of Cups" -> "ace_of_cups.jpg"
    """
    filename = card.name.lower()
    filename = re.sub(r"[^a-z0-9\s]", "", filename)
    filename = re.sub(r"\s+", "_", filename)
    filename = re.sub(r"^the_", "", filename)
    return f"{filename}.jpg"


def card_for_api(card: Card) -> Dict[str, Any]:
    out = card.model_dump()
    out["image"] = get_card_image_path(card)
    return out
