"""FastAPI routes for the card catalog.

Endpoints:
- GET /cards
- GET /cards/{name}
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from ..cards import CatalogError, card_for_api, get_card, get_catalog

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("")
def cards() -> Dict[str, Any]:
    return {"cards": [card_for_api(c) for c in get_catalog()]}


@router.get("/{name}")
def card(name: str) -> Dict[str, Any]:
    try:
        c = get_card(name)
    except CatalogError:
        raise HTTPException(status_code=404, detail=f"Unknown card: {name}")
    return {"card": card_for_api(c)}
