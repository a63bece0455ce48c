"""FastAPI routes for full and quick readings."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request

from ..models import QuickReadingResponse, ReadingRequest, ReadingResponse
from ..sessions_storage.sessions_db import SessionNotFoundError

log = logging.getLogger("oracle.reading_routes")
router = APIRouter(prefix="/reading", tags=["reading"])


def _save_exchange(
    request: Request,
    req: ReadingRequest,
    answer: str,
    cards: List[Dict[str, Any]],
    payload: Dict[str, Any],
) -> Optional[str]:
    if req.user_id is None:
        return None

    store = request.app.state.store
    messages = [
        {"role": "user", "content": req.question},
        {"role": "assistant", "content": answer, "cards": cards},
    ]
    try:
        return store.save_chat(req.user_id, messages, reading=payload, session_id=req.session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session not found: {req.session_id}")


@router.post("", response_model=ReadingResponse)
def full_reading(req: ReadingRequest, request: Request) -> ReadingResponse:
    """Three-card reading; falls back to an offline reading if the completion API fails."""
    if req.session_id is not None and req.user_id is None:
        raise HTTPException(status_code=400, detail="user_id required to continue a session")

    reading = request.app.state.pipeline.generate(req.question)
    log.info("reading generated offline=%s cards=%s", reading.is_offline, [c.name for c in reading.cards])

    session_id = _save_exchange(
        request,
        req,
        reading.reading,
        [c.model_dump() for c in reading.cards],
        reading.model_dump(by_alias=True),
    )
    return ReadingResponse(session_id=session_id, result=reading)


@router.post("/quick", response_model=QuickReadingResponse)
def quick_reading(req: ReadingRequest, request: Request) -> QuickReadingResponse:
    """Single-card follow-up reading."""
    if req.session_id is not None and req.user_id is None:
        raise HTTPException(status_code=400, detail="user_id required to continue a session")

    reading = request.app.state.pipeline.generate_quick_reading(req.question)
    log.info("quick reading generated offline=%s card=%s", reading.is_offline, reading.card.name)

    session_id = _save_exchange(
        request,
        req,
        reading.reading,
        [reading.card.model_dump()],
        reading.model_dump(by_alias=True),
    )
    return QuickReadingResponse(session_id=session_id, result=reading)
