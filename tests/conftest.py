"""Shared fixtures for the quiz service tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from mathquest.core.models import SessionType
from mathquest.core.quiz_manager import QuizManager
from mathquest.core.quiz_types import get_variant


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(clock: FakeClock) -> QuizManager:
    quiz_manager = QuizManager(clock=clock)
    yield quiz_manager
    quiz_manager.clear_all_timeouts()


@pytest.fixture
def parent(manager: QuizManager):
    return manager.users.register("parent", "parent-pass", is_parent=True)


@pytest.fixture
def answer_key():
    """Return a function producing the correct answers for a session."""

    def build(session: SessionType) -> list[object]:
        variant = get_variant(session.quiz_type)
        return [variant.answer_key(item) for item in session.items]

    return build
