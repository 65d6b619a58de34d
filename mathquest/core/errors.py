"""Exception hierarchy for the session and scoring core.

Every error is recoverable and carries the HTTP status and machine code the
API layer reports, so the server and CLI can translate them without
inspecting message text.
"""

from __future__ import annotations


class QuizError(Exception):
    """Base class for all reported quiz errors."""

    status_code: int = 400
    code: str = "QUIZ_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgument(QuizError):
    code = "INVALID_ARGUMENT"


class UnknownQuizType(InvalidArgument):
    code = "INVALID_QUIZ_TYPE"


class QuizTypeMismatch(InvalidArgument):
    code = "QUIZ_TYPE_MISMATCH"


class AnswerCountMismatch(QuizError):
    code = "ANSWER_COUNT_MISMATCH"


class SessionNotFound(QuizError):
    status_code = 404
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__("Session not found")
        self.session_id = session_id


class SessionOwnershipMismatch(QuizError):
    status_code = 403
    code = "UNAUTHORIZED_ACCESS"

    def __init__(self, session_id: str) -> None:
        super().__init__("Unauthorized access to session")
        self.session_id = session_id


class UserNotFound(QuizError):
    status_code = 404
    code = "USER_NOT_FOUND"

    def __init__(self, id_or_username: str) -> None:
        super().__init__("User not found")
        self.id_or_username = id_or_username


class Unauthorized(QuizError):
    status_code = 401
    code = "AUTH_TOKEN_REQUIRED"


class Forbidden(Unauthorized):
    status_code = 403
    code = "FORBIDDEN"


class CreditLimitExceeded(QuizError):
    status_code = 409
    code = "CLAIMED_EXCEEDS_EARNED"


class PersistenceFailure(QuizError):
    status_code = 503
    code = "PERSISTENCE_FAILURE"
