"""Service storing per-user, per-quiz-type score multipliers."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from threading import Lock

from mathquest.constants.quiz_constants import DEFAULT_MULTIPLIER
from mathquest.core.errors import InvalidArgument, PersistenceFailure
from mathquest.core.quiz_types import parse_quiz_type
from mathquest.core.services.json_file import read_json_document, write_json_document

logger = logging.getLogger(__name__)

MULTIPLIERS_FILE_NAME = "multipliers.json"


class MultiplierStore:
    """Maps ``(user_id, quiz_type)`` to a non-negative multiplier, defaulting to 1."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._multipliers: dict[tuple[str, str], float] = {}

    def get_user_multiplier(self, user_id: str, quiz_type: str) -> float:
        key = (user_id, parse_quiz_type(quiz_type).value)
        with self._lock:
            return self._multipliers.get(key, DEFAULT_MULTIPLIER)

    def set_user_multiplier(self, user_id: str, quiz_type: str, multiplier: float) -> None:
        """Store a multiplier. Zero is allowed; negative or non-finite values are not."""
        quiz_type_value = parse_quiz_type(quiz_type).value
        if isinstance(multiplier, bool) or not isinstance(multiplier, (int, float)):
            raise InvalidArgument("Multiplier must be a number")
        if not math.isfinite(multiplier) or multiplier < 0:
            raise InvalidArgument("Multiplier must be a non-negative number")
        key = (user_id, quiz_type_value)
        with self._lock:
            previous = self._multipliers.get(key)
            self._multipliers[key] = multiplier
            try:
                self._flush()
            except OSError as exc:
                if previous is None:
                    del self._multipliers[key]
                else:
                    self._multipliers[key] = previous
                logger.error("Failed to persist multiplier for user %s: %s", user_id, exc)
                raise PersistenceFailure("Failed to save multiplier. Please try again.") from exc
        logger.info("Multiplier for user %s on %s set to %s", user_id, quiz_type_value, multiplier)

    def get_all_for_user(self, user_id: str, quiz_types: list[str]) -> dict[str, float]:
        with self._lock:
            return {
                quiz_type: self._multipliers.get((user_id, quiz_type), DEFAULT_MULTIPLIER)
                for quiz_type in quiz_types
            }

    def _flush(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonMultiplierStore(MultiplierStore):
    """Multiplier store backed by a JSON file in the data directory."""

    def __init__(self, data_dir: Path) -> None:
        super().__init__()
        self._path = data_dir.resolve() / MULTIPLIERS_FILE_NAME
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        raw = read_json_document(self._path)
        if raw is None:
            return
        for entry in raw.get("multipliers", []):
            self._multipliers[(entry["userId"], entry["quizType"])] = entry["multiplier"]
        logger.info("Loaded %d multiplier(s) from %s", len(self._multipliers), self._path)

    def _flush(self) -> None:
        entries = [
            {"userId": user_id, "quizType": quiz_type, "multiplier": multiplier}
            for (user_id, quiz_type), multiplier in self._multipliers.items()
        ]
        write_json_document(self._path, {"multipliers": entries})
