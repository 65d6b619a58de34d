"""Business logic for quiz sessions, scoring and the parent dashboard."""

from __future__ import annotations

from collections.abc import Sequence
import logging
import math

from mathquest.constants.quiz_constants import MAX_PARENT_MULTIPLIER, SESSION_TTL_SECONDS
from mathquest.core.errors import AnswerCountMismatch, InvalidArgument, QuizTypeMismatch
from mathquest.core.models import (
    CompletedSessionRecord,
    CreditBalance,
    QuizSession,
    ScoreResult,
    SessionType,
    User,
    UserStats,
    WordSession,
)
from mathquest.core.quiz_types import all_quiz_types, get_variant, parse_quiz_type
from mathquest.core.services.credit_ledger import CreditLedger
from mathquest.core.services.multiplier_store import MultiplierStore
from mathquest.core.services.score_repository import ScoreRepository
from mathquest.core.services.session_store import Clock, SessionStore, utc_now
from mathquest.core.services.stats_aggregator import StatsAggregator
from mathquest.core.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class QuizManager:
    """Facade for the quiz services: sessions, scoring, multipliers, stats, credits and users.

    Each service guards its own state, so requests touching different
    sessions never wait on each other.
    """

    def __init__(
        self,
        session_store: SessionStore | None = None,
        score_repository: ScoreRepository | None = None,
        multiplier_store: MultiplierStore | None = None,
        user_directory: UserDirectory | None = None,
        credit_ledger: CreditLedger | None = None,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self._sessions = session_store or SessionStore(ttl_seconds=ttl_seconds, clock=clock)
        self._scores = score_repository or ScoreRepository()
        self._multipliers = multiplier_store or MultiplierStore()
        self._users = user_directory or UserDirectory(clock=clock)
        self._stats = StatsAggregator(self._scores)
        self._credits = credit_ledger or CreditLedger(self._stats)

    @property
    def users(self) -> UserDirectory:
        return self._users

    @property
    def session_store(self) -> SessionStore:
        return self._sessions

    # --- Session Store Delegation ---

    def create_session(self, user_id: str, quiz_type: str) -> SessionType:
        return self._sessions.create_session(user_id, quiz_type)

    def get_session(self, session_id: str) -> QuizSession | None:
        return self._sessions.get_session(session_id)

    def get_word_session(self, session_id: str) -> WordSession | None:
        return self._sessions.get_word_session(session_id)

    def delete_session(self, session_id: str) -> None:
        self._sessions.delete_session(session_id)

    def delete_word_session(self, session_id: str) -> None:
        self._sessions.delete_word_session(session_id)

    def cleanup_expired_sessions(self) -> int:
        return self._sessions.cleanup_expired_sessions()

    def start_background_sweep(self, interval_seconds: float) -> None:
        self._sessions.start_sweeper(interval_seconds)

    def clear_all_timeouts(self) -> None:
        self._sessions.clear_all_timeouts()

    # --- Scoring ---

    def validate_quiz_answers(
        self,
        session_id: str,
        user_id: str,
        user_answers: Sequence[object],
        quiz_type: str,
    ) -> ScoreResult:
        """Score a submission, record it, and consume the session.

        The session is taken out of the store before scoring so concurrent or
        repeated submissions see ``SessionNotFound``. If anything fails before
        the score record is saved, the session goes back into the store and
        the user can submit again.
        """
        variant = get_variant(quiz_type)
        session = self._sessions.checkout(session_id, user_id)
        try:
            if session.quiz_type != variant.quiz_type.value:
                raise QuizTypeMismatch(
                    f"Session {session_id} is a {session.quiz_type} quiz, not {variant.quiz_type.value}"
                )
            if isinstance(user_answers, (str, bytes)) or not isinstance(user_answers, Sequence):
                raise InvalidArgument("Answers array is required")
            if len(user_answers) != len(session.items):
                raise AnswerCountMismatch(
                    f"Expected {len(session.items)} answers, got {len(user_answers)}"
                )

            score = variant.count_correct(session.items, user_answers)
            multiplier = self._multipliers.get_user_multiplier(user_id, session.quiz_type)
            record = CompletedSessionRecord(
                session_id=session_id,
                user_id=user_id,
                quiz_type=session.quiz_type,
                score=score,
                total=len(session.items),
                multiplier=multiplier,
                created_at=session.created_at,
                completed_at=self._sessions.now(),
            )
            self._scores.add_record(record)
        except Exception:
            self._sessions.release(session)
            raise

        self._sessions.complete(session_id)
        logger.info(
            "User %s scored %d/%d on %s session %s (multiplier %s)",
            user_id, record.score, record.total, record.quiz_type, session_id, multiplier,
        )
        return ScoreResult(score=record.score, total=record.total)

    # --- Multipliers ---

    def get_user_multiplier(self, user_id: str, quiz_type: str) -> float:
        return self._multipliers.get_user_multiplier(user_id, quiz_type)

    def set_user_multiplier(
        self, user_id: str, quiz_type: str, multiplier: float, actor: User | None
    ) -> None:
        """Change a multiplier on behalf of a parent actor."""
        self._users.require_parent(actor)
        self._multipliers.set_user_multiplier(user_id, quiz_type, multiplier)

    # --- History & Stats ---

    def get_session_score(self, session_id: str) -> ScoreResult | None:
        record = self._stats.get_session_score(session_id)
        if record is None:
            return None
        return ScoreResult(score=record.score, total=record.total)

    def get_user_session_scores(self, user_id: str) -> list[CompletedSessionRecord]:
        return self._stats.get_user_session_scores(user_id)

    def get_user_sessions(self, user_id: str) -> list[dict[str, object]]:
        return self._stats.get_user_sessions(user_id)

    def get_user_stats(self, user_id: str) -> UserStats:
        return self._stats.get_user_stats(user_id)

    # --- Credits ---

    def get_credit_balance(self, user_id: str) -> CreditBalance:
        return self._credits.get_balance(user_id)

    def claim_credits(self, user_id: str, amount: float) -> CreditBalance:
        return self._credits.claim(user_id, amount)

    def add_earned_credits(self, user_id: str, amount: float) -> CreditBalance:
        return self._credits.add_earned_credits(user_id, amount)

    # --- Accounts ---

    def register_user(self, username: str, password: str) -> User:
        return self._users.register(username, password)

    def login(self, username: str, password: str) -> tuple[str, User]:
        return self._users.login(username, password)

    def parent_login(self, username: str, password: str) -> tuple[str, User]:
        token, user = self._users.login(username, password)
        self._users.require_parent(user)
        return token, user

    def authenticate(self, token: str | None) -> User:
        return self._users.resolve_token(token)

    # --- Parent Dashboard ---

    def list_users(self, actor: User | None, search: str | None = None, limit: int | None = None) -> list[dict[str, object]]:
        self._users.require_parent(actor)
        return [self._user_summary(user) for user in self._users.list_users(search, limit)]

    def get_user_summary(self, actor: User | None, id_or_username: str) -> dict[str, object]:
        self._users.require_parent(actor)
        return self._user_summary(self._users.find_user(id_or_username))

    def update_multiplier(
        self, actor: User | None, id_or_username: str, quiz_type: str, multiplier: object
    ) -> dict[str, object]:
        """Parent dashboard multiplier change: whole numbers from 0 to 5."""
        self._users.require_parent(actor)
        quiz_type_value = parse_quiz_type(quiz_type).value
        if (
            isinstance(multiplier, bool)
            or not isinstance(multiplier, (int, float))
            or not math.isfinite(multiplier)
            or multiplier != int(multiplier)
            or not 0 <= multiplier <= MAX_PARENT_MULTIPLIER
        ):
            raise InvalidArgument(f"Multiplier must be an integer between 0 and {MAX_PARENT_MULTIPLIER}")
        user = self._users.find_user(id_or_username)
        self.set_user_multiplier(user.id, quiz_type_value, int(multiplier), actor)
        return {
            "message": "Multiplier updated successfully",
            "userId": user.id,
            "quizType": quiz_type_value,
            "multiplier": int(multiplier),
        }

    def update_credits(self, actor: User | None, id_or_username: str, **updates: object) -> dict[str, object]:
        self._users.require_parent(actor)
        user = self._users.find_user(id_or_username)
        balance = self._credits.update_credits(user.id, **updates)
        return {
            "message": "Credits updated successfully",
            "userId": user.id,
            "earnedCredits": balance.earned,
            "claimedCredits": balance.claimed,
        }

    def _user_summary(self, user: User) -> dict[str, object]:
        balance = self._credits.get_balance(user.id)
        return {
            "id": user.id,
            "username": user.username,
            "earnedCredits": balance.earned,
            "claimedCredits": balance.claimed,
            "multipliers": self._multipliers.get_all_for_user(user.id, all_quiz_types()),
        }
