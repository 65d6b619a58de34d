"""Service tracking earned and claimed credits."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from threading import Lock

from mathquest.core.errors import CreditLimitExceeded, InvalidArgument, PersistenceFailure
from mathquest.core.models import CreditBalance
from mathquest.core.services.json_file import read_json_document, write_json_document
from mathquest.core.services.stats_aggregator import StatsAggregator

logger = logging.getLogger(__name__)

CREDITS_FILE_NAME = "credits.json"

_CREDIT_FIELDS = ("earned", "claimed")


def _require_non_negative_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative integer")
    return value


def _require_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer")
    return value


def _restore(mapping: dict[str, float], key: str, previous: float | None) -> None:
    if previous is None:
        mapping.pop(key, None)
    else:
        mapping[key] = previous


class CreditLedger:
    """Earned credits are the weighted quiz total plus manual adjustments.

    Claimed credits may never exceed earned credits.
    """

    def __init__(self, stats: StatsAggregator) -> None:
        self._lock = Lock()
        self._stats = stats
        self._earned_adjustments: dict[str, float] = {}
        self._claimed: dict[str, float] = {}

    def get_balance(self, user_id: str) -> CreditBalance:
        with self._lock:
            return self._balance(user_id)

    def add_earned_credits(self, user_id: str, amount: float) -> CreditBalance:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount < 0:
            raise InvalidArgument("Invalid amount. Must be a non-negative number.")
        with self._lock:
            self._commit(user_id, self._earned_adjustments.get(user_id, 0) + amount, self._claimed.get(user_id, 0))
            balance = self._balance(user_id)
        logger.info("Added %s earned credit(s) for user %s", amount, user_id)
        return balance

    def claim(self, user_id: str, amount: float) -> CreditBalance:
        """Claim ``amount`` credits, keeping the claimed total within what was earned."""
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount < 0:
            raise InvalidArgument("Invalid amount. Must be a non-negative number.")
        with self._lock:
            balance = self._balance(user_id)
            if balance.claimed + amount > balance.earned:
                raise CreditLimitExceeded("Total claimed credit cannot be larger than total earned credit")
            self._commit(user_id, self._earned_adjustments.get(user_id, 0), balance.claimed + amount)
            balance = self._balance(user_id)
        logger.info("User %s claimed %s credit(s)", user_id, amount)
        return balance

    def update_credits(
        self,
        user_id: str,
        *,
        field: str | None = None,
        amount: object = None,
        earned_credits: object = None,
        claimed_credits: object = None,
        earned_delta: object = None,
        claimed_delta: object = None,
    ) -> CreditBalance:
        """Parent-initiated change: absolute values, deltas, or a single field/amount pair."""
        if field is not None:
            if field not in _CREDIT_FIELDS:
                raise InvalidArgument('Field must be either "earned" or "claimed"')
            target = _require_non_negative_int(amount, "Amount")
            if field == "earned":
                earned_credits, claimed_credits = target, None
            else:
                earned_credits, claimed_credits = None, target
            earned_delta = claimed_delta = None
        elif all(value is None for value in (earned_credits, claimed_credits, earned_delta, claimed_delta)):
            raise InvalidArgument(
                "At least one credit field is required "
                "(earnedCredits, claimedCredits, earnedDelta, claimedDelta)"
            )

        if earned_credits is not None:
            _require_non_negative_int(earned_credits, "Earned credits")
        if claimed_credits is not None:
            _require_non_negative_int(claimed_credits, "Claimed credits")
        if earned_delta is not None:
            _require_int(earned_delta, "Earned delta")
        if claimed_delta is not None:
            _require_int(claimed_delta, "Claimed delta")

        with self._lock:
            current = self._balance(user_id)
            final_earned = current.earned if earned_credits is None else earned_credits
            final_claimed = current.claimed if claimed_credits is None else claimed_credits
            final_earned = max(0, final_earned + (earned_delta or 0))
            final_claimed = max(0, final_claimed + (claimed_delta or 0))
            if final_claimed > final_earned:
                raise CreditLimitExceeded("Claimed credits cannot exceed earned credits")

            quiz_total = self._stats.get_user_stats(user_id).total_score
            self._commit(user_id, final_earned - quiz_total, final_claimed)
            balance = self._balance(user_id)

        logger.info(
            "Credits for user %s set to earned=%s claimed=%s",
            user_id, balance.earned, balance.claimed,
        )
        return balance

    def _balance(self, user_id: str) -> CreditBalance:
        quiz_total = self._stats.get_user_stats(user_id).total_score
        return CreditBalance(
            earned=quiz_total + self._earned_adjustments.get(user_id, 0),
            claimed=self._claimed.get(user_id, 0),
        )

    def _commit(self, user_id: str, earned_adjustment: float, claimed: float) -> None:
        """Store both totals for ``user_id``; called with the lock held."""
        previous_adjustment = self._earned_adjustments.get(user_id)
        previous_claimed = self._claimed.get(user_id)
        self._earned_adjustments[user_id] = earned_adjustment
        self._claimed[user_id] = claimed
        try:
            self._flush()
        except OSError as exc:
            _restore(self._earned_adjustments, user_id, previous_adjustment)
            _restore(self._claimed, user_id, previous_claimed)
            logger.error("Failed to persist credits for user %s: %s", user_id, exc)
            raise PersistenceFailure("Failed to save credits. Please try again.") from exc

    def _flush(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonCreditLedger(CreditLedger):
    """Credit ledger that mirrors adjustments and claims to a JSON file.

    Quiz totals are not stored here; they come from the score repository.
    """

    def __init__(self, stats: StatsAggregator, data_dir: Path) -> None:
        super().__init__(stats)
        self._path = data_dir.resolve() / CREDITS_FILE_NAME
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        raw = read_json_document(self._path)
        if raw is None:
            return
        for entry in raw.get("credits", []):
            self._earned_adjustments[entry["userId"]] = entry.get("earnedAdjustment", 0)
            self._claimed[entry["userId"]] = entry.get("claimed", 0)
        logger.info("Loaded credits for %d user(s) from %s", len(self._claimed), self._path)

    def _flush(self) -> None:
        user_ids = sorted(set(self._earned_adjustments) | set(self._claimed))
        entries = [
            {
                "userId": user_id,
                "earnedAdjustment": self._earned_adjustments.get(user_id, 0),
                "claimed": self._claimed.get(user_id, 0),
            }
            for user_id in user_ids
        ]
        write_json_document(self._path, {"credits": entries})
