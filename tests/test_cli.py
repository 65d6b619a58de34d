"""Tests for the ``mathquest-admin`` command line tool."""

from __future__ import annotations

import json

import httpx
import pytest

from mathquest.cli.main import main
from mathquest.core.quiz_types import all_quiz_types

_ENV_VARS = ("API_URL", "ADMIN_USERNAME", "ADMIN_PASSWORD", "ADMIN_TOKEN", "VERBOSE", "DRY_RUN")

_USER = {
    "id": "abc123",
    "username": "kid",
    "earnedCredits": 12,
    "claimedCredits": 2,
    "multipliers": {"simple-math": 2},
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class FakeApi:
    """Records requests and answers them like the parent endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/parent/login":
            return httpx.Response(200, json={"token": "issued-token", "user": {"id": "p1"}})
        if request.headers.get("Authorization") not in ("Bearer issued-token", "Bearer given-token"):
            return httpx.Response(401, json={"message": "Invalid or expired token", "code": "AUTH_TOKEN_REQUIRED"})
        if path == "/parent/users":
            return httpx.Response(200, json={"users": [_USER]})
        if path == "/parent/users/ghost":
            return httpx.Response(404, json={"message": "User not found", "code": "USER_NOT_FOUND"})
        if path == "/parent/users/kid":
            return httpx.Response(200, json=_USER)
        if path == "/parent/users/kid/multiplier":
            body = json.loads(request.content)
            return httpx.Response(200, json={"message": "Multiplier updated successfully", **body})
        if path == "/parent/users/kid/credits":
            return httpx.Response(
                200, json={"message": "Credits updated successfully", "earnedCredits": 20, "claimedCredits": 5}
            )
        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


def _run(api: FakeApi, *argv: str) -> int:
    return main(list(argv), transport=httpx.MockTransport(api))


class TestAuthentication:
    def test_token_skips_login(self, api, capsys):
        assert _run(api, "--token", "given-token", "list-users") == 0
        assert [request.url.path for request in api.requests] == ["/parent/users"]
        assert api.requests[0].headers["Authorization"] == "Bearer given-token"
        assert "kid (abc123)" in capsys.readouterr().out

    def test_username_and_password_log_in_first(self, api):
        assert _run(api, "--username", "mum", "--password", "pw", "get-user", "--user", "kid") == 0
        assert [request.url.path for request in api.requests] == ["/parent/login", "/parent/users/kid"]
        assert json.loads(api.requests[0].content) == {"username": "mum", "password": "pw"}

    def test_credentials_from_environment(self, api, monkeypatch):
        monkeypatch.setenv("ADMIN_TOKEN", "given-token")
        monkeypatch.setenv("API_URL", "http://quiz.example:9000")
        assert _run(api, "list-users") == 0
        assert str(api.requests[0].url).startswith("http://quiz.example:9000/parent/users")

    def test_missing_credentials(self, api, capsys):
        assert _run(api, "list-users") == 1
        assert capsys.readouterr().err.startswith("Error: Provide --token")
        assert api.requests == []


class TestCommands:
    def test_list_users_flags(self, api, capsys):
        _run(api, "--token", "given-token", "list-users", "--search", "kid", "--limit", "5",
             "--show-credits", "--show-multipliers")
        params = api.requests[0].url.params
        assert (params["search"], params["limit"]) == ("kid", "5")
        out = capsys.readouterr().out
        assert "earned=12 claimed=2" in out
        assert "simple-math=2" in out

    def test_update_multiplier(self, api, capsys):
        code = _run(api, "--token", "given-token", "update-multiplier",
                    "--user", "kid", "--quiz-type", "simple-math", "--value", "3")
        assert code == 0
        request = api.requests[0]
        assert request.method == "PATCH"
        assert json.loads(request.content) == {"quizType": "simple-math", "multiplier": 3}
        assert "simple-math = 3" in capsys.readouterr().out

    def test_update_multiplier_rejects_unknown_type_locally(self, api, capsys):
        code = _run(api, "--token", "given-token", "update-multiplier",
                    "--user", "kid", "--quiz-type", "chess", "--value", "3")
        assert code == 1
        assert "Invalid quiz type" in capsys.readouterr().err
        assert api.requests == []

    def test_list_types(self, api, capsys):
        assert _run(api, "update-multiplier", "--list-types") == 0
        assert capsys.readouterr().out.split() == all_quiz_types()
        assert api.requests == []

    def test_update_credits_payload(self, api, capsys):
        code = _run(api, "--token", "given-token", "update-credits",
                    "--user", "kid", "--earned", "20", "--claimed-delta", "5")
        assert code == 0
        assert json.loads(api.requests[0].content) == {"earnedCredits": 20, "claimedDelta": 5}
        assert "earned=20 claimed=5" in capsys.readouterr().out

    def test_update_credits_needs_a_change(self, api, capsys):
        assert _run(api, "--token", "given-token", "update-credits", "--user", "kid") == 1
        assert "Error:" in capsys.readouterr().err

    def test_api_errors_are_reported(self, api, capsys):
        assert _run(api, "--token", "given-token", "get-user", "--user", "ghost") == 1
        assert capsys.readouterr().err.strip() == "Error: User not found"


class TestDryRun:
    def test_dry_run_sends_nothing(self, api, capsys):
        code = _run(api, "--dry-run", "update-credits", "--user", "kid", "--claimed", "4")
        assert code == 0
        assert api.requests == []
        assert capsys.readouterr().out.strip() == '[dry-run] PATCH /parent/users/kid/credits {"claimedCredits": 4}'

    def test_dry_run_from_environment(self, api, monkeypatch, capsys):
        monkeypatch.setenv("DRY_RUN", "true")
        code = _run(api, "update-multiplier", "--user", "kid", "--quiz-type", "simple-words", "--value", "2")
        assert code == 0
        assert api.requests == []
        assert "[dry-run] PATCH /parent/users/kid/multiplier" in capsys.readouterr().out


class TestUsageErrors:
    def test_missing_required_option_exits_with_one(self, api, capsys):
        assert _run(api, "update-credits") == 1
        assert "--user" in capsys.readouterr().err
        assert api.requests == []

    def test_unknown_command_exits_with_one(self, api):
        assert _run(api, "delete-everything") == 1

    def test_bad_option_value_exits_with_one(self, api):
        assert _run(api, "update-multiplier", "--user", "kid", "--value", "lots") == 1

    def test_version_exits_cleanly(self, api, capsys):
        assert _run(api, "--version") == 0
        assert "mathquest-admin" in capsys.readouterr().out
