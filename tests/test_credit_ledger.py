"""Tests for earned/claimed credit accounting."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mathquest.core.errors import CreditLimitExceeded, InvalidArgument, PersistenceFailure
from mathquest.core.models import CompletedSessionRecord
from mathquest.core.services.credit_ledger import CreditLedger, JsonCreditLedger
from mathquest.core.services.score_repository import ScoreRepository
from mathquest.core.services.stats_aggregator import StatsAggregator

_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _record(session_id: str, score: int, multiplier: float = 1, user_id: str = "u1") -> CompletedSessionRecord:
    return CompletedSessionRecord(
        session_id=session_id,
        user_id=user_id,
        quiz_type="simple-math",
        score=score,
        total=10,
        multiplier=multiplier,
        created_at=_NOW,
        completed_at=_NOW,
    )


@pytest.fixture
def repository() -> ScoreRepository:
    return ScoreRepository()


@pytest.fixture
def ledger(repository: ScoreRepository) -> CreditLedger:
    return CreditLedger(StatsAggregator(repository))


class TestBalance:
    def test_earned_follows_weighted_scores(self, repository, ledger):
        repository.add_record(_record("s1", 8))
        repository.add_record(_record("s2", 5, multiplier=2))
        balance = ledger.get_balance("u1")
        assert (balance.earned, balance.claimed, balance.available) == (18, 0, 18)

    def test_add_earned_credits(self, ledger):
        assert ledger.add_earned_credits("u1", 4).earned == 4
        with pytest.raises(InvalidArgument):
            ledger.add_earned_credits("u1", -1)


class TestClaim:
    def test_claim_within_earned(self, repository, ledger):
        repository.add_record(_record("s1", 10))
        balance = ledger.claim("u1", 6)
        assert (balance.claimed, balance.available) == (6, 4)

    def test_claim_cannot_exceed_earned(self, repository, ledger):
        repository.add_record(_record("s1", 10))
        ledger.claim("u1", 6)
        with pytest.raises(CreditLimitExceeded) as exc_info:
            ledger.claim("u1", 5)
        assert exc_info.value.status_code == 409
        assert ledger.get_balance("u1").claimed == 6

    @pytest.mark.parametrize("amount", [-1, float("nan"), "3", None])
    def test_invalid_claim_amount(self, ledger, amount):
        with pytest.raises(InvalidArgument):
            ledger.claim("u1", amount)


class TestParentUpdates:
    def test_field_and_amount(self, repository, ledger):
        repository.add_record(_record("s1", 10))
        balance = ledger.update_credits("u1", field="earned", amount=50)
        assert balance.earned == 50
        balance = ledger.update_credits("u1", field="claimed", amount=20)
        assert (balance.earned, balance.claimed) == (50, 20)

    def test_adjustment_survives_new_scores(self, repository, ledger):
        repository.add_record(_record("s1", 10))
        ledger.update_credits("u1", earned_credits=25)
        repository.add_record(_record("s2", 3))
        assert ledger.get_balance("u1").earned == 28

    def test_deltas_clamp_at_zero(self, ledger):
        ledger.update_credits("u1", earned_credits=5)
        balance = ledger.update_credits("u1", earned_delta=-10)
        assert balance.earned == 0

    def test_claimed_above_earned_is_rejected(self, ledger):
        ledger.update_credits("u1", earned_credits=5)
        with pytest.raises(CreditLimitExceeded):
            ledger.update_credits("u1", claimed_delta=6)
        assert ledger.get_balance("u1").claimed == 0

    @pytest.mark.parametrize(
        "updates",
        [
            {},
            {"field": "bonus", "amount": 3},
            {"field": "earned", "amount": -3},
            {"earned_credits": 2.5},
            {"claimed_delta": "1"},
        ],
    )
    def test_invalid_updates(self, ledger, updates):
        with pytest.raises(InvalidArgument):
            ledger.update_credits("u1", **updates)


class TestJsonLedger:
    def test_claims_and_adjustments_survive_reload(self, tmp_path, repository):
        repository.add_record(_record("s1", 10))
        ledger = JsonCreditLedger(StatsAggregator(repository), tmp_path)
        ledger.add_earned_credits("u1", 5)
        ledger.claim("u1", 12)

        reloaded = JsonCreditLedger(StatsAggregator(repository), tmp_path)
        balance = reloaded.get_balance("u1")
        assert (balance.earned, balance.claimed) == (15, 12)

    def test_failed_write_keeps_previous_totals(self, tmp_path, repository, monkeypatch):
        repository.add_record(_record("s1", 10))
        ledger = JsonCreditLedger(StatsAggregator(repository), tmp_path)
        ledger.claim("u1", 3)

        def fail() -> None:
            raise OSError("disk full")

        monkeypatch.setattr(ledger, "_flush", fail)
        with pytest.raises(PersistenceFailure):
            ledger.claim("u1", 4)
        with pytest.raises(PersistenceFailure):
            ledger.update_credits("u1", earned_credits=40)
        balance = ledger.get_balance("u1")
        assert (balance.earned, balance.claimed) == (10, 3)
