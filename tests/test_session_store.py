"""Tests for session storage, expiry and checkout."""

from __future__ import annotations

import time

import pytest

from mathquest.core.errors import SessionNotFound, SessionOwnershipMismatch, UnknownQuizType
from mathquest.core.models import QuizSession, WordSession
from mathquest.core.services.session_store import SessionStore


@pytest.fixture
def store(clock) -> SessionStore:
    session_store = SessionStore(ttl_seconds=1800, clock=clock)
    yield session_store
    session_store.clear_all_timeouts()


class TestCreateAndLookup:
    def test_numeric_and_word_sessions_use_separate_collections(self, store):
        numeric = store.create_session("u1", "simple-math")
        words = store.create_session("u1", "simple-words")

        assert isinstance(numeric, QuizSession)
        assert isinstance(words, WordSession)
        assert store.get_session(numeric.session_id) is numeric
        assert store.get_word_session(numeric.session_id) is None
        assert store.get_word_session(words.session_id) is words
        assert store.find_session(words.session_id) is words
        assert store.active_count() == 2

    def test_session_ids_are_unique(self, store):
        ids = {store.create_session("u1", "addition-test").session_id for _ in range(50)}
        assert len(ids) == 50

    def test_unknown_quiz_type_creates_nothing(self, store):
        with pytest.raises(UnknownQuizType):
            store.create_session("u1", "history")
        assert store.active_count() == 0

    def test_delete(self, store):
        session = store.create_session("u1", "simple-math")
        store.delete_session(session.session_id)
        store.delete_session(session.session_id)
        assert store.get_session(session.session_id) is None


class TestExpiry:
    def test_session_expires_at_ttl(self, store, clock):
        session = store.create_session("u1", "simple-math")
        clock.advance(1799)
        assert store.get_session(session.session_id) is session
        clock.advance(1)
        assert store.get_session(session.session_id) is None

    def test_cleanup_removes_only_expired_sessions(self, store, clock):
        old = store.create_session("u1", "simple-math")
        old_words = store.create_session("u1", "simple-words")
        clock.advance(1000)
        fresh = store.create_session("u1", "simple-math")
        clock.advance(900)

        assert store.cleanup_expired_sessions() == 2
        assert store.get_session(old.session_id) is None
        assert store.get_word_session(old_words.session_id) is None
        assert store.get_session(fresh.session_id) is fresh

    def test_expired_session_cannot_be_checked_out(self, store, clock):
        session = store.create_session("u1", "simple-math")
        clock.advance(1800)
        with pytest.raises(SessionNotFound):
            store.checkout(session.session_id, "u1")

    def test_background_sweeper_expires_sessions(self, store, clock):
        store.create_session("u1", "simple-math")
        clock.advance(3600)
        sweeper = store.start_sweeper(0.01)

        deadline = time.monotonic() + 2.0
        while store.active_count() and time.monotonic() < deadline:
            time.sleep(0.01)
        assert store.active_count() == 0

        store.clear_all_timeouts()
        store.clear_all_timeouts()
        assert not sweeper.is_alive()


class TestCheckout:
    def test_checkout_is_single_use(self, store):
        session = store.create_session("u1", "simple-math")
        assert store.checkout(session.session_id, "u1") is session
        with pytest.raises(SessionNotFound):
            store.checkout(session.session_id, "u1")

    def test_other_user_cannot_checkout(self, store):
        session = store.create_session("u1", "simple-math")
        with pytest.raises(SessionOwnershipMismatch) as exc_info:
            store.checkout(session.session_id, "u2")
        assert exc_info.value.status_code == 403
        assert store.get_session(session.session_id) is session

    def test_release_makes_session_available_again(self, store):
        session = store.create_session("u1", "simple-words")
        store.checkout(session.session_id, "u1")
        store.release(session)
        assert store.checkout(session.session_id, "u1") is session

    def test_completed_session_is_gone(self, store):
        session = store.create_session("u1", "simple-math")
        store.checkout(session.session_id, "u1")
        store.complete(session.session_id)
        assert store.find_session(session.session_id) is None
        assert store.active_count() == 0
