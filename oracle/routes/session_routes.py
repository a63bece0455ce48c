"""FastAPI routes for reading history."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Query, Request

from ..history import filter_sessions, session_statistics
from ..models import Session, SessionDetail, SessionUpdate

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=List[Session])
def list_sessions(
    request: Request,
    user_id: str = Query(..., min_length=1),
    q: str = Query("", description="Search in title or session id"),
    filter_type: str = Query("all", alias="filter", description="'all', 'recent' or 'favorites'"),
    limit: int = Query(50, ge=1, le=500),
) -> List[Dict[str, Any]]:
    sessions = request.app.state.store.get_user_sessions(user_id, limit=limit)
    try:
        return filter_sessions(sessions, query=q, filter_type=filter_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/stats")
def stats(request: Request, user_id: str = Query(..., min_length=1)) -> Dict[str, Any]:
    store = request.app.state.store
    sessions = store.get_user_sessions(user_id, limit=10_000)
    counts = store.count_messages([s["id"] for s in sessions])
    return session_statistics(sessions, counts)


@router.get("/{session_id}", response_model=SessionDetail)
def get_session(session_id: str, request: Request) -> Dict[str, Any]:
    store = request.app.state.store
    session = store.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    session["messages"] = store.get_session_messages(session_id)
    return session


@router.patch("/{session_id}", response_model=Session)
def update_session(session_id: str, req: SessionUpdate, request: Request) -> Dict[str, Any]:
    store = request.app.state.store
    session = store.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    if req.title is not None:
        session = store.update_session_title(session_id, req.title)
    if req.is_favorite is not None:
        session = store.set_favorite(session_id, req.is_favorite)
    return session


@router.delete("/{session_id}")
def delete_session(session_id: str, request: Request) -> Dict[str, bool]:
    if not request.app.state.store.delete_session(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return {"ok": True}
