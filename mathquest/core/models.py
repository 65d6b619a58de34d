"""Domain models for the quiz service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class FractionPair:
    """A fraction shown in comparison quizzes."""

    numerator: int
    denominator: int

    def to_dict(self) -> dict[str, int]:
        return {"numerator": self.numerator, "denominator": self.denominator}


@dataclass(frozen=True, slots=True)
class Question:
    """A generated question together with its answer key.

    ``question`` is either a display string such as ``"3 * 4"`` or a pair of
    fractions for comparison quizzes. ``answer`` is a number, a
    comma-separated factor list, or one of ``<``, ``>``, ``=``.
    """

    question: str | tuple[FractionPair, FractionPair]
    answer: int | str

    def public_view(self) -> dict[str, object]:
        """Client-facing representation with the answer key removed."""
        if isinstance(self.question, tuple):
            return {"question": [pair.to_dict() for pair in self.question]}
        return {"question": self.question}


@dataclass(frozen=True, slots=True)
class WordItem:
    """A spelling target with an optional hint."""

    word: str
    hint: str | None = None

    @property
    def letter_count(self) -> int:
        return len(self.word)

    def public_view(self) -> dict[str, object]:
        return {"hint": self.hint, "letterCount": self.letter_count}


@dataclass(frozen=True, slots=True)
class QuizSession:
    """An in-flight numeric quiz attempt owned by the session store."""

    session_id: str
    user_id: str
    quiz_type: str
    questions: tuple[Question, ...]
    created_at: datetime

    @property
    def items(self) -> tuple[Question, ...]:
        return self.questions

    def public_view(self) -> dict[str, object]:
        return {
            "sessionId": self.session_id,
            "questions": [question.public_view() for question in self.questions],
        }


@dataclass(frozen=True, slots=True)
class WordSession:
    """An in-flight spelling quiz attempt owned by the session store."""

    session_id: str
    user_id: str
    quiz_type: str
    words: tuple[WordItem, ...]
    created_at: datetime

    @property
    def items(self) -> tuple[WordItem, ...]:
        return self.words

    def public_view(self) -> dict[str, object]:
        return {
            "sessionId": self.session_id,
            "words": [word.public_view() for word in self.words],
        }


SessionType = QuizSession | WordSession


@dataclass(frozen=True, slots=True)
class CompletedSessionRecord:
    """Immutable result of one successful submission."""

    session_id: str
    user_id: str
    quiz_type: str
    score: int
    total: int
    multiplier: float
    created_at: datetime
    completed_at: datetime

    @property
    def weighted_score(self) -> float:
        return self.score * self.multiplier

    def to_dict(self) -> dict[str, object]:
        """Convert to the camelCase shape used by the API and the JSON store."""
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "sessionType": self.quiz_type,
            "score": self.score,
            "total": self.total,
            "multiplier": self.multiplier,
            "weightedScore": self.weighted_score,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompletedSessionRecord":
        return cls(
            session_id=data["sessionId"],
            user_id=data["userId"],
            quiz_type=data["sessionType"],
            score=int(data["score"]),
            total=int(data["total"]),
            multiplier=data.get("multiplier", 1),
            created_at=datetime.fromisoformat(data["createdAt"]),
            completed_at=datetime.fromisoformat(data["completedAt"]),
        )


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Return value of answer validation."""

    score: int
    total: int


@dataclass(slots=True)
class StatsDetail:
    session_id: str
    score: int
    multiplier: float
    weighted_score: float
    session_type: str

    def to_dict(self) -> dict[str, object]:
        return {
            "sessionId": self.session_id,
            "score": self.score,
            "multiplier": self.multiplier,
            "weightedScore": self.weighted_score,
            "sessionType": self.session_type,
        }


@dataclass(slots=True)
class UserStats:
    """Totals derived on demand from completed session records."""

    total_score: float
    sessions_count: int
    details: list[StatsDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "totalScore": self.total_score,
            "sessionsCount": self.sessions_count,
            "details": [detail.to_dict() for detail in self.details],
        }


@dataclass(slots=True)
class User:
    """Registered account known to the user directory."""

    id: str
    username: str
    password_hash: str
    is_parent: bool = False
    created_at: datetime | None = None

    def public_view(self) -> dict[str, object]:
        return {"id": self.id, "username": self.username, "isParent": self.is_parent}

    def to_dict(self) -> dict[str, object]:
        """Storage shape, including the password hash. Never send this over the API."""
        return {
            "id": self.id,
            "username": self.username,
            "passwordHash": self.password_hash,
            "isParent": self.is_parent,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        created_at = data.get("createdAt")
        return cls(
            id=data["id"],
            username=data["username"],
            password_hash=data["passwordHash"],
            is_parent=bool(data.get("isParent", False)),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )


@dataclass(slots=True)
class CreditBalance:
    """Earned and claimed credits for one user."""

    earned: float
    claimed: float

    @property
    def available(self) -> float:
        return max(0, self.earned - self.claimed)
