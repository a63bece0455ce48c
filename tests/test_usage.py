"""Usage accounting and plan limits."""

from datetime import datetime, timezone

import pytest

from oracle.usage import (
    PLANS,
    estimate_tokens,
    estimated_cost,
    get_plan,
    month_bounds,
    usage_for_period,
    usage_summary,
)


def _at(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens(None) == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_estimated_cost():
    assert estimated_cost(1000) == pytest.approx(0.002)
    assert estimated_cost(0) == 0


def test_plans():
    assert [p.id for p in PLANS] == ["free", "premium", "pro"]
    assert get_plan("free").readings_limit == 10
    assert get_plan("premium").readings_limit == 100
    assert get_plan("pro").readings_limit is None
    assert get_plan("pro").to_dict()["readings_limit"] == "unlimited"
    with pytest.raises(ValueError):
        get_plan("enterprise")


def test_month_bounds():
    last_start, last_end, month_start = month_bounds(_at(2026, 3, 15, 10, 30))
    assert last_start == _at(2026, 2, 1)
    assert last_end == _at(2026, 2, 28, 23, 59, 59, 999000)
    assert month_start == _at(2026, 3, 1)


def test_month_bounds_january():
    last_start, last_end, _ = month_bounds(_at(2026, 1, 5))
    assert last_start == _at(2025, 12, 1)
    assert last_end.day == 31


def _seed(store, clock):
    clock.now = _at(2026, 9, 30, 23, 59)
    store.save_chat("user-1", [{"role": "user", "content": "x" * 40}])

    clock.now = _at(2026, 10, 2, 8, 0)
    store.save_chat(
        "user-1",
        [{"role": "user", "content": "abcd" * 5}, {"role": "assistant", "content": "abcde"}],
    )
    clock.now = _at(2026, 10, 10, 8, 0)
    store.save_chat("user-1", [{"role": "user", "content": "abc"}])
    store.save_chat("user-2", [{"role": "user", "content": "not mine"}])


def test_usage_for_period(store, clock):
    _seed(store, clock)

    period = usage_for_period(store, "user-1", _at(2026, 10, 1), _at(2026, 10, 18))
    assert period.readings == 2
    # 20 chars -> 5, 5 chars -> 2, 3 chars -> 1
    assert period.tokens == 8
    assert period.cost == pytest.approx(8 / 1000 * 0.002)


def test_usage_for_empty_period(store):
    period = usage_for_period(store, "nobody", _at(2026, 10, 1), _at(2026, 10, 18))
    assert (period.readings, period.tokens) == (0, 0)


def test_usage_summary(store, clock):
    _seed(store, clock)

    summary = usage_summary(store, "user-1", plan_id="free", now=_at(2026, 10, 18, 12))

    current = summary["current_period"]
    assert current["readings_used"] == 2
    assert current["readings_limit"] == 10
    assert current["remaining"] == 8
    assert current["at_limit"] is False
    assert current["tokens_used"] == 8

    assert summary["this_month"]["total_readings"] == 2
    assert summary["last_month"]["total_readings"] == 1
    assert summary["last_month"]["total_tokens"] == 10


def test_usage_summary_at_limit(store, clock):
    clock.now = _at(2026, 10, 3)
    for i in range(10):
        store.save_chat("user-1", [{"role": "user", "content": f"question {i}"}])

    current = usage_summary(store, "user-1", now=_at(2026, 10, 18))["current_period"]
    assert current["at_limit"] is True
    assert current["remaining"] == 0

    pro = usage_summary(store, "user-1", plan_id="pro", now=_at(2026, 10, 18))["current_period"]
    assert pro["readings_limit"] == "unlimited"
    assert pro["remaining"] is None
    assert pro["at_limit"] is False
