"""Reading history helpers: session titles, filters and statistics."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

DEFAULT_TITLE = "New Reading Session"
TITLE_MAX_LENGTH = 40
RECENT_WINDOW = timedelta(days=7)
FILTER_TYPES = ("all", "recent", "favorites")


def generate_session_title(first_message: Optional[str]) -> str:
    """Build a session title from the first user message."""
    if not first_message:
        return DEFAULT_TITLE

    if len(first_message) > TITLE_MAX_LENGTH:
        title = first_message[:TITLE_MAX_LENGTH] + "..."
    else:
        title = first_message

    title = re.sub(r"[^\w\s]", "", title, flags=re.ASCII).strip()
    return title or DEFAULT_TITLE


def _parse_ts(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def filter_sessions(
    sessions: Sequence[Mapping[str, Any]],
    query: str = "",
    filter_type: str = "all",
    now: Optional[datetime] = None,
) -> List[Mapping[str, Any]]:
    if filter_type not in FILTER_TYPES:
        raise ValueError(f"Unknown filter: {filter_type}")

    filtered = list(sessions)

    q = (query or "").strip().lower()
    if q:
        filtered = [
            s for s in filtered
            if q in (s.get("title") or "").lower() or q in str(s.get("id") or "").lower()
        ]

    if filter_type == "recent":
        cutoff = (now or datetime.now(timezone.utc)) - RECENT_WINDOW
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        filtered = [s for s in filtered if s.get("created_at") and _parse_ts(s["created_at"]) > cutoff]
    elif filter_type == "favorites":
        filtered = [s for s in filtered if s.get("is_favorite")]

    return filtered


def session_statistics(
    sessions: Sequence[Mapping[str, Any]],
    message_counts: Mapping[str, int],
) -> Dict[str, Any]:
    total_messages = sum(message_counts.get(s["id"], 0) for s in sessions)
    average = round(total_messages / len(sessions), 1) if sessions else 0

    return {
        "total_sessions": len(sessions),
        "total_messages": total_messages,
        "average_per_session": average,
    }
