"""Service persisting completed session records."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock

from mathquest.core.errors import PersistenceFailure
from mathquest.core.models import CompletedSessionRecord
from mathquest.core.services.json_file import read_json_document, write_json_document

logger = logging.getLogger(__name__)

SCORES_FILE_NAME = "session_scores.json"


class ScoreRepository:
    """Append-only store of completed session records, kept in memory."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._records: dict[str, CompletedSessionRecord] = {}

    def add_record(self, record: CompletedSessionRecord) -> None:
        """Persist a record once. A second record for the same session is rejected."""
        with self._lock:
            if record.session_id in self._records:
                raise PersistenceFailure(f"Session {record.session_id} already has a score record")
            self._records[record.session_id] = record
            try:
                self._flush()
            except OSError as exc:
                del self._records[record.session_id]
                logger.error("Failed to persist score for session %s: %s", record.session_id, exc)
                raise PersistenceFailure("Failed to save session score. Please try again.") from exc

    def get_record(self, session_id: str) -> CompletedSessionRecord | None:
        with self._lock:
            return self._records.get(session_id)

    def get_user_records(self, user_id: str) -> list[CompletedSessionRecord]:
        """Records for one user ordered by completion time, oldest first."""
        with self._lock:
            records = [record for record in self._records.values() if record.user_id == user_id]
        return sorted(records, key=lambda record: record.completed_at)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def _flush(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonScoreRepository(ScoreRepository):
    """Score repository that mirrors every record to a JSON file on disk."""

    def __init__(self, data_dir: Path) -> None:
        super().__init__()
        self._path = data_dir.resolve() / SCORES_FILE_NAME
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        raw = read_json_document(self._path)
        if raw is None:
            return
        for entry in raw.get("records", []):
            record = CompletedSessionRecord.from_dict(entry)
            self._records[record.session_id] = record
        logger.info("Loaded %d score record(s) from %s", len(self._records), self._path)

    def _flush(self) -> None:
        document = {"records": [record.to_dict() for record in self._records.values()]}
        write_json_document(self._path, document)
