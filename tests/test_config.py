"""Tests for server settings and service wiring."""

from __future__ import annotations

import pytest

from app_main import build_manager
from mathquest.config import Settings
from mathquest.core.errors import Unauthorized
from mathquest.core.services.score_repository import SCORES_FILE_NAME


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("HOST", "PORT", "LOG_LEVEL", "SESSION_TTL_SECONDS", "DATA_DIR", "PARENT_USERNAME", "PARENT_PASSWORD"):
        monkeypatch.delenv(f"MATHQUEST_{name}", raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.port == 8000
        assert settings.session_ttl_seconds == 1800
        assert settings.data_dir is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MATHQUEST_PORT", "9001")
        monkeypatch.setenv("MATHQUEST_DATA_DIR", str(tmp_path))
        settings = Settings()
        assert settings.port == 9001
        assert settings.data_dir == tmp_path

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("MATHQUEST_LOG_LEVEL=DEBUG\n", encoding="utf-8")
        assert Settings().log_level == "DEBUG"


class TestBuildManager:
    def test_parent_account_is_seeded(self):
        manager = build_manager(Settings(parent_username="mum", parent_password="pw"))
        token, user = manager.parent_login("mum", "pw")
        assert user.is_parent
        assert manager.authenticate(token) is user

    def test_scores_are_written_to_data_dir(self, tmp_path, answer_key):
        manager = build_manager(Settings(data_dir=tmp_path / "data"))
        session = manager.create_session("u1", "simple-math")
        manager.validate_quiz_answers(session.session_id, "u1", answer_key(session), "simple-math")
        assert (tmp_path / "data" / SCORES_FILE_NAME).exists()

    def test_data_dir_state_survives_restart(self, tmp_path, answer_key):
        settings = Settings(data_dir=tmp_path / "data", parent_username="mum", parent_password="pw")
        first = build_manager(settings)
        kid = first.register_user("kid", "kid-pass")
        token, _ = first.login("kid", "kid-pass")
        session = first.create_session(kid.id, "simple-math")
        first.validate_quiz_answers(session.session_id, kid.id, answer_key(session), "simple-math")
        first.claim_credits(kid.id, 4)
        _, parent = first.parent_login("mum", "pw")
        first.update_multiplier(parent, "kid", "simple-words", 3)

        second = build_manager(settings)
        _, again = second.login("kid", "kid-pass")
        assert again.id == kid.id
        assert [record.session_id for record in second.get_user_session_scores(kid.id)] == [session.session_id]
        balance = second.get_credit_balance(kid.id)
        assert (balance.earned, balance.claimed) == (10, 4)
        assert second.get_user_multiplier(kid.id, "simple-words") == 3
        assert [user.username for user in second.users.list_users()] == ["kid", "mum"]
        with pytest.raises(Unauthorized):
            second.authenticate(token)
