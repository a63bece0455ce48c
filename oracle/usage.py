"""Monthly usage accounting and plan limits.

Token counts are estimates (about four characters per token) over the
stored message text, not figures reported by the completion API.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

TOKEN_COST_PER_1K = 0.002
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: str
    period: str
    readings_limit: Optional[int]  # None means unlimited
    features: Tuple[str, ...]
    popular: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["features"] = list(self.features)
        out["readings_limit"] = "unlimited" if self.readings_limit is None else self.readings_limit
        return out


PLANS: Tuple[Plan, ...] = (
    Plan(
        id="free",
        name="Free",
        price="$0",
        period="forever",
        readings_limit=10,
        features=(
            "10 readings per month",
            "Basic card interpretations",
            "Standard support",
            "Basic reading history",
        ),
    ),
    Plan(
        id="premium",
        name="Premium",
        price="$9.99",
        period="month",
        readings_limit=100,
        features=(
            "100 readings per month",
            "Advanced card interpretations",
            "Priority support",
            "Detailed reading history",
            "Advanced spread layouts",
            "Export readings",
            "Custom reading notes",
        ),
        popular=True,
    ),
    Plan(
        id="pro",
        name="Pro",
        price="$19.99",
        period="month",
        readings_limit=None,
        features=(
            "Unlimited readings",
            "AI-powered personalization",
            "Premium support",
            "Complete reading analytics",
            "All spread layouts",
            "Advanced export options",
            "Reading scheduling",
        ),
    ),
)


def get_plan(plan_id: str) -> Plan:
    for p in PLANS:
        if p.id == plan_id:
            return p
    raise ValueError(f"Unknown plan: {plan_id}")


def estimate_tokens(text: Optional[str]) -> int:
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def estimated_cost(tokens: int) -> float:
    return tokens / 1000 * TOKEN_COST_PER_1K


@dataclass(frozen=True)
class UsagePeriod:
    readings: int
    tokens: int

    @property
    def cost(self) -> float:
        return estimated_cost(self.tokens)

    def to_dict(self) -> Dict[str, Any]:
        return {"total_readings": self.readings, "total_tokens": self.tokens, "total_cost": self.cost}


def usage_for_period(store, user_id: str, start: datetime, end: datetime) -> UsagePeriod:
    sessions = store.sessions_between(user_id, start, end)
    contents: List[str] = store.message_contents([s["id"] for s in sessions])
    return UsagePeriod(
        readings=len(sessions),
        tokens=sum(estimate_tokens(c) for c in contents),
    )


def month_bounds(now: datetime) -> Tuple[datetime, datetime, datetime]:
    """(start of last month, end of last month, start of this month)."""
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end_of_last_month = start_of_month - timedelta(microseconds=1000)
    start_of_last_month = end_of_last_month.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start_of_last_month, end_of_last_month, start_of_month


def usage_summary(store, user_id: str, plan_id: str = "free", now: Optional[datetime] = None) -> Dict[str, Any]:
    plan = get_plan(plan_id)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    last_start, last_end, month_start = month_bounds(now)
    current = usage_for_period(store, user_id, month_start, now)
    last = usage_for_period(store, user_id, last_start, last_end)

    limit = plan.readings_limit
    return {
        "plan": plan.id,
        "current_period": {
            "readings_used": current.readings,
            "readings_limit": "unlimited" if limit is None else limit,
            "remaining": None if limit is None else max(0, limit - current.readings),
            "at_limit": False if limit is None else current.readings >= limit,
            "tokens_used": current.tokens,
            "estimated_cost": current.cost,
        },
        "this_month": current.to_dict(),
        "last_month": last.to_dict(),
    }
