"""Service holding in-flight quiz sessions and expiring them."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import logging
from threading import Event, Lock, Thread
from uuid import uuid4

from mathquest.constants.quiz_constants import SESSION_TTL_SECONDS, SWEEP_INTERVAL_SECONDS
from mathquest.core.errors import SessionNotFound, SessionOwnershipMismatch
from mathquest.core.models import QuizSession, SessionType, WordSession
from mathquest.core.quiz_types import QuizKind, get_variant

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Keeps active numeric and word sessions keyed by session id.

    All map access goes through one lock. Submission uses ``checkout`` to
    remove a session atomically, so a session can be scored at most once and
    the expiry sweep never sees a session that is being scored.
    """

    def __init__(
        self,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self._lock = Lock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: dict[str, QuizSession] = {}
        self._word_sessions: dict[str, WordSession] = {}
        self._checked_out: set[str] = set()
        self._sweeper: SessionSweeper | None = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def now(self) -> datetime:
        return self._clock()

    # --- Lifecycle ---

    def create_session(self, user_id: str, quiz_type: str) -> SessionType:
        """Generate content for ``quiz_type`` and store a new session for the user."""
        variant = get_variant(quiz_type)
        session_id = str(uuid4())
        created_at = self._clock()
        items = tuple(variant.generate())

        session: SessionType
        if variant.kind is QuizKind.WORDS:
            session = WordSession(
                session_id=session_id,
                user_id=user_id,
                quiz_type=variant.quiz_type.value,
                words=items,
                created_at=created_at,
            )
        else:
            session = QuizSession(
                session_id=session_id,
                user_id=user_id,
                quiz_type=variant.quiz_type.value,
                questions=items,
                created_at=created_at,
            )

        with self._lock:
            self._collection_for(session)[session_id] = session
        logger.info(
            "Created %s session %s for user %s with %d items",
            session.quiz_type, session_id, user_id, len(items),
        )
        return session

    def get_session(self, session_id: str) -> QuizSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or self._is_expired(session):
                return None
            return session

    def get_word_session(self, session_id: str) -> WordSession | None:
        with self._lock:
            session = self._word_sessions.get(session_id)
            if session is None or self._is_expired(session):
                return None
            return session

    def find_session(self, session_id: str) -> SessionType | None:
        """Look up a session in either collection."""
        return self.get_session(session_id) or self.get_word_session(session_id)

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def delete_word_session(self, session_id: str) -> None:
        with self._lock:
            self._word_sessions.pop(session_id, None)

    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions) + len(self._word_sessions)

    # --- Submission ---

    def checkout(self, session_id: str, user_id: str) -> SessionType:
        """Atomically take a live session out of the store for scoring.

        Raises:
            SessionNotFound: The id is unknown, expired, or already taken.
            SessionOwnershipMismatch: The session belongs to another user.
        """
        with self._lock:
            session = self._sessions.get(session_id) or self._word_sessions.get(session_id)
            if session is None or session_id in self._checked_out or self._is_expired(session):
                raise SessionNotFound(session_id)
            if session.user_id != user_id:
                raise SessionOwnershipMismatch(session_id)
            del self._collection_for(session)[session_id]
            self._checked_out.add(session_id)
            return session

    def complete(self, session_id: str) -> None:
        """Finalize a checked-out session; it is never returned to the store."""
        with self._lock:
            self._checked_out.discard(session_id)

    def release(self, session: SessionType) -> None:
        """Return a checked-out session so the user can retry submitting."""
        with self._lock:
            self._checked_out.discard(session.session_id)
            self._collection_for(session)[session.session_id] = session

    # --- Expiry ---

    def cleanup_expired_sessions(self) -> int:
        """Remove every stored session older than the TTL; returns how many were removed."""
        removed = 0
        with self._lock:
            for collection in (self._sessions, self._word_sessions):
                for session_id, session in list(collection.items()):
                    try:
                        if self._is_expired(session):
                            del collection[session_id]
                            removed += 1
                    except Exception:
                        logger.exception("Failed to expire session %s", session_id)
        if removed:
            logger.info("Expired %d quiz session(s)", removed)
        return removed

    def start_sweeper(self, interval_seconds: float = SWEEP_INTERVAL_SECONDS) -> "SessionSweeper":
        with self._lock:
            if self._sweeper is None or not self._sweeper.is_alive():
                self._sweeper = SessionSweeper(self, interval_seconds)
                self._sweeper.start()
            return self._sweeper

    def clear_all_timeouts(self) -> None:
        """Stop the background sweep. Safe to call more than once."""
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.stop()

    # --- Helpers ---

    def _is_expired(self, session: SessionType) -> bool:
        return self._clock() - session.created_at >= self._ttl

    def _collection_for(self, session: SessionType) -> dict:
        if isinstance(session, WordSession):
            return self._word_sessions
        return self._sessions


class SessionSweeper(Thread):
    """Background thread that periodically expires old sessions."""

    def __init__(self, store: SessionStore, interval_seconds: float) -> None:
        super().__init__(name="SessionSweeper", daemon=True)
        self._store = store
        self._interval = interval_seconds
        self._stopped = Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._store.cleanup_expired_sessions()
            except Exception:
                logger.exception("Session sweep failed; will retry")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stopped.set()
        if self.is_alive():
            self.join(timeout)
