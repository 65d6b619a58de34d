"""Quiz-related constants shared across the core and API layers."""

SESSION_TTL_SECONDS: int = 30 * 60
SWEEP_INTERVAL_SECONDS: float = 60.0
TOKEN_TTL_SECONDS: int = 24 * 60 * 60

DEFAULT_QUESTION_COUNT: int = 10
SHORT_QUESTION_COUNT: int = 5

DEFAULT_MULTIPLIER: float = 1
MAX_PARENT_MULTIPLIER: int = 5

DEFAULT_USER_LIST_LIMIT: int = 20
