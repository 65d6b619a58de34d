"""Thin HTTP client for the parent dashboard endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10.0


class AdminApiError(Exception):
    """Raised when the API rejects a request or cannot be reached."""


class AdminClient:
    """Wraps ``httpx.Client`` with bearer authentication and error mapping."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._token = token

    @property
    def token(self) -> str | None:
        return self._token

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AdminClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def login(self, username: str, password: str) -> str:
        """Log in as a parent and keep the issued token for later requests."""
        data = self._request("POST", "/parent/login", json={"username": username, "password": password})
        token = data.get("token")
        if not token:
            raise AdminApiError("Login response did not include a token")
        self._token = token
        return token

    def list_users(self, search: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if search:
            params["search"] = search
        if limit is not None:
            params["limit"] = limit
        return self._request("GET", "/parent/users", params=params).get("users", [])

    def get_user(self, user: str) -> dict[str, Any]:
        return self._request("GET", f"/parent/users/{user}")

    def update_multiplier(self, user: str, quiz_type: str, multiplier: int) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/parent/users/{user}/multiplier",
            json={"quizType": quiz_type, "multiplier": multiplier},
        )

    def update_credits(self, user: str, changes: dict[str, int]) -> dict[str, Any]:
        return self._request("PATCH", f"/parent/users/{user}/credits", json=changes)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise AdminApiError(f"Could not reach API: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            raise AdminApiError(message or f"Request failed with status {response.status_code}")
        return data if isinstance(data, dict) else {}
