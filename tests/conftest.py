"""Shared fixtures for the Oracle test suite."""

from datetime import datetime, timezone

import pytest

from oracle.completion import CompletionResult
from oracle.sessions_storage.sessions_db import SessionStore


class StubCompletion:
    """Completion stand-in that records calls and returns a fixed result."""

    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc
        self.calls = []

    def complete(self, system_prompt, user_prompt, max_tokens, temperature):
        self.calls.append(
            {
                "system": system_prompt,
                "user": user_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.exc is not None:
            raise self.exc
        return self.result


class MutableClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def ok_completion():
    return StubCompletion(result=CompletionResult.success("The cards speak clearly."))


@pytest.fixture
def failing_completion():
    return StubCompletion(result=CompletionResult.failure("api_error", "Service Unavailable", 503))


@pytest.fixture
def clock():
    return MutableClock(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(tmp_path, clock):
    s = SessionStore(str(tmp_path / "oracle.sqlite"), clock=clock)
    s.init_db()
    return s
