"""Service for user accounts and bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta
import hashlib
import hmac
import logging
from pathlib import Path
import secrets
from threading import Lock
from uuid import uuid4

from mathquest.constants.quiz_constants import DEFAULT_USER_LIST_LIMIT, TOKEN_TTL_SECONDS
from mathquest.core.errors import Forbidden, InvalidArgument, PersistenceFailure, Unauthorized, UserNotFound
from mathquest.core.models import User
from mathquest.core.services.json_file import read_json_document, write_json_document
from mathquest.core.services.session_store import Clock, utc_now

logger = logging.getLogger(__name__)

USERS_FILE_NAME = "users.json"

_HASH_ITERATIONS = 120_000


def _hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), _HASH_ITERATIONS)
    return f"{salt}${digest.hex()}"


def _verify_password(password: str, stored: str) -> bool:
    salt, _, _ = stored.partition("$")
    return hmac.compare_digest(_hash_password(password, salt), stored)


class UserDirectory:
    """Registers users, checks passwords and resolves opaque bearer tokens.

    Password hashing runs outside the lock, so a slow login never blocks
    token lookups for other requests. Tokens expire after ``token_ttl_seconds``
    and are kept in memory only.
    """

    def __init__(self, token_ttl_seconds: float = TOKEN_TTL_SECONDS, clock: Clock = utc_now) -> None:
        self._lock = Lock()
        self._clock = clock
        self._token_ttl = timedelta(seconds=token_ttl_seconds)
        self._users: dict[str, User] = {}
        self._ids_by_username: dict[str, str] = {}
        self._tokens: dict[str, tuple[str, datetime]] = {}

    def register(self, username: str, password: str, is_parent: bool = False) -> User:
        cleaned = (username or "").strip()
        if not cleaned or not password:
            raise InvalidArgument("Username and password are required")
        key = cleaned.lower()
        user = User(
            id=uuid4().hex,
            username=cleaned,
            password_hash=_hash_password(password),
            is_parent=is_parent,
            created_at=self._clock(),
        )
        with self._lock:
            if key in self._ids_by_username:
                raise InvalidArgument("Username already exists")
            self._users[user.id] = user
            self._ids_by_username[key] = user.id
            try:
                self._flush()
            except OSError as exc:
                del self._users[user.id]
                del self._ids_by_username[key]
                logger.error("Failed to persist account %s: %s", cleaned, exc)
                raise PersistenceFailure("Failed to save account. Please try again.") from exc
        logger.info("Registered %s account %s", "parent" if is_parent else "user", cleaned)
        return user

    def ensure_parent(self, username: str, password: str) -> User:
        """Create the parent account if it does not exist yet."""
        with self._lock:
            user_id = self._ids_by_username.get(username.strip().lower())
            existing = self._users.get(user_id) if user_id else None
        if existing is not None:
            return existing
        return self.register(username, password, is_parent=True)

    def login(self, username: str, password: str) -> tuple[str, User]:
        """Check credentials and issue a fresh bearer token."""
        if not username or not password:
            raise InvalidArgument("Username and password are required")
        with self._lock:
            user_id = self._ids_by_username.get(username.strip().lower())
            user = self._users.get(user_id) if user_id else None
        if user is None or not _verify_password(password, user.password_hash):
            raise Unauthorized("Invalid username or password")

        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            self._drop_expired_tokens(now)
            self._tokens[token] = (user.id, now + self._token_ttl)
        return token, user

    def resolve_token(self, token: str | None) -> User:
        if not token:
            raise Unauthorized("Authorization token is missing or invalid")
        with self._lock:
            entry = self._tokens.get(token)
            if entry is not None and entry[1] <= self._clock():
                del self._tokens[token]
                entry = None
            user = self._users.get(entry[0]) if entry else None
        if user is None:
            raise Unauthorized("Invalid or expired token")
        return user

    def token_count(self) -> int:
        with self._lock:
            return len(self._tokens)

    def require_parent(self, actor: User | None) -> User:
        if actor is None:
            raise Unauthorized("Authorization token is missing or invalid")
        if not actor.is_parent:
            raise Forbidden("Access denied. Parent privileges required.")
        return actor

    def find_user(self, id_or_username: str) -> User:
        """Look a user up by id first, then by username."""
        with self._lock:
            user = self._users.get(id_or_username)
            if user is None:
                user_id = self._ids_by_username.get(id_or_username.strip().lower())
                user = self._users.get(user_id) if user_id else None
        if user is None:
            raise UserNotFound(id_or_username)
        return user

    def list_users(self, search: str | None = None, limit: int | None = None) -> list[User]:
        limit = DEFAULT_USER_LIST_LIMIT if limit is None else limit
        if limit < 0:
            raise InvalidArgument("Limit must be a non-negative integer")
        if search:
            try:
                users = [self.find_user(search)]
            except UserNotFound:
                users = []
        else:
            with self._lock:
                users = sorted(self._users.values(), key=lambda user: user.username.lower())
        return users[:limit]

    def _drop_expired_tokens(self, now: datetime) -> None:
        """Called with the lock held."""
        expired = [token for token, (_, expires_at) in self._tokens.items() if expires_at <= now]
        for token in expired:
            del self._tokens[token]

    def _flush(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonUserDirectory(UserDirectory):
    """User directory that mirrors accounts to a JSON file. Tokens are not saved."""

    def __init__(self, data_dir: Path, token_ttl_seconds: float = TOKEN_TTL_SECONDS, clock: Clock = utc_now) -> None:
        super().__init__(token_ttl_seconds=token_ttl_seconds, clock=clock)
        self._path = data_dir.resolve() / USERS_FILE_NAME
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        raw = read_json_document(self._path)
        if raw is None:
            return
        for entry in raw.get("users", []):
            user = User.from_dict(entry)
            self._users[user.id] = user
            self._ids_by_username[user.username.lower()] = user.id
        logger.info("Loaded %d account(s) from %s", len(self._users), self._path)

    def _flush(self) -> None:
        write_json_document(self._path, {"users": [user.to_dict() for user in self._users.values()]})
