"""Shared fixtures for unit tests."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from authlink.auth.mock import MockIdentityClient
from authlink.recovery.timers import TimerScope


@dataclass
class RecordingNotifier:
    """Notifier that records notices and answers confirmations from a script."""

    notices: list[tuple[str, str]] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    answer: bool = True

    def notify(self, message: str, *, type: str = "info") -> None:  # noqa: A002
        self.notices.append((type, message))

    async def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer

    def types(self) -> list[str]:
        return [kind for kind, _ in self.notices]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity() -> MockIdentityClient:
    """A fresh in-memory identity backend."""
    return MockIdentityClient()


@pytest.fixture
async def timers():
    """A timer scope closed after the test."""
    scope = TimerScope("test")
    yield scope
    scope.close()
