from __future__ import annotations

import pytest

from tests.wfm_resilience.support.fakes import (
    FakeLogger,
    ManualClock,
    RecordingListener,
)


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manually advanced clock per test."""
    return ManualClock()


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def recording_listener() -> RecordingListener:
    """Provide a fresh recording breaker listener per test."""
    return RecordingListener()
