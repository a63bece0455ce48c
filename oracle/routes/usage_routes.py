"""FastAPI routes for plans and monthly usage."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query, Request

from ..usage import PLANS, usage_summary

router = APIRouter(tags=["usage"])


@router.get("/plans")
def plans() -> Dict[str, Any]:
    return {"plans": [p.to_dict() for p in PLANS]}


@router.get("/usage")
def usage(
    request: Request,
    user_id: str = Query(..., min_length=1),
    plan: str = Query("free"),
) -> Dict[str, Any]:
    try:
        return usage_summary(request.app.state.store, user_id, plan_id=plan)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
