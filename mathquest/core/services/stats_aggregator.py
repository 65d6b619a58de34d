"""Service deriving per-user history and totals from score records."""

from __future__ import annotations

from mathquest.core.models import CompletedSessionRecord, StatsDetail, UserStats
from mathquest.core.services.score_repository import ScoreRepository


class StatsAggregator:
    """Read-only view over the score repository.

    Nothing is cached: every call recomputes from the stored records, so the
    totals cannot drift from the history they summarize.
    """

    def __init__(self, repository: ScoreRepository) -> None:
        self._repository = repository

    def get_user_session_scores(self, user_id: str) -> list[CompletedSessionRecord]:
        return self._repository.get_user_records(user_id)

    def get_user_sessions(self, user_id: str) -> list[dict[str, object]]:
        """History rows for the ``/session/all`` endpoint."""
        return [record.to_dict() for record in self._repository.get_user_records(user_id)]

    def get_session_score(self, session_id: str) -> CompletedSessionRecord | None:
        return self._repository.get_record(session_id)

    def get_user_stats(self, user_id: str) -> UserStats:
        records = self._repository.get_user_records(user_id)
        details = [
            StatsDetail(
                session_id=record.session_id,
                score=record.score,
                multiplier=record.multiplier,
                weighted_score=record.weighted_score,
                session_type=record.quiz_type,
            )
            for record in records
        ]
        return UserStats(
            total_score=sum(detail.weighted_score for detail in details),
            sessions_count=len(records),
            details=details,
        )
