"""Application entry point for the MathQuest quiz service."""

from __future__ import annotations

import socket

import uvicorn

from mathquest.config import Settings, load_settings
from mathquest.core.quiz_manager import QuizManager
from mathquest.core.services.credit_ledger import JsonCreditLedger
from mathquest.core.services.multiplier_store import JsonMultiplierStore
from mathquest.core.services.score_repository import JsonScoreRepository
from mathquest.core.services.stats_aggregator import StatsAggregator
from mathquest.core.services.user_directory import JsonUserDirectory
from mathquest.server.api_server import create_api_app
from mathquest.utils.logging_config import configure_logging


def _determine_public_url(port: int) -> str:
    """Best-effort determination of the local IP for the advertised URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def build_manager(settings: Settings) -> QuizManager:
    """Wire the quiz services according to ``settings``.

    With a data directory, accounts, scores, multipliers and credits are all
    kept on disk. Bearer tokens are not, so users log in again after a restart.
    """
    if settings.data_dir:
        repository = JsonScoreRepository(settings.data_dir)
        quiz_manager = QuizManager(
            score_repository=repository,
            multiplier_store=JsonMultiplierStore(settings.data_dir),
            user_directory=JsonUserDirectory(settings.data_dir),
            credit_ledger=JsonCreditLedger(StatsAggregator(repository), settings.data_dir),
            ttl_seconds=settings.session_ttl_seconds,
        )
    else:
        quiz_manager = QuizManager(ttl_seconds=settings.session_ttl_seconds)
    if settings.parent_username and settings.parent_password:
        quiz_manager.users.ensure_parent(settings.parent_username, settings.parent_password)
    return quiz_manager


def main() -> None:
    """Initialize logging, build the services, and serve the API until interrupted."""
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting MathQuest service…")

    quiz_manager = build_manager(settings)
    if not (settings.parent_username and settings.parent_password):
        logger.warning("No parent account configured; parent endpoints will reject every request")

    app = create_api_app(quiz_manager, sweep_interval_seconds=settings.sweep_interval_seconds)
    logger.info("API available at %s", _determine_public_url(settings.port))
    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    finally:
        quiz_manager.clear_all_timeouts()
        logger.info("MathQuest service stopped")


if __name__ == "__main__":
    main()
