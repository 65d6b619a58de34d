"""FastAPI server exposing quiz, stats, credit and parent endpoints."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from mathquest.constants.about import APP_DESCRIPTION, APP_NAME, APP_VERSION
from mathquest.core.errors import QuizError
from mathquest.core.models import User
from mathquest.core.quiz_manager import QuizManager

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


class CredentialsPayload(BaseModel):
    """Payload schema for registration and login."""

    username: str
    password: str


class SubmitAnswersPayload(BaseModel):
    """Payload schema for submitted quiz answers."""

    sessionId: str
    answers: list[Any]


class ClaimPayload(BaseModel):
    claimedAmount: float


class AmountPayload(BaseModel):
    amount: float


class MultiplierPayload(BaseModel):
    quizType: str
    multiplier: float


class CreditsPayload(BaseModel):
    """Parent credit update: either field/amount or any of the absolute/delta fields."""

    field: str | None = None
    amount: int | None = None
    earnedCredits: int | None = None
    claimedCredits: int | None = None
    earnedDelta: int | None = None
    claimedDelta: int | None = None


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def create_api_app(quiz_manager: QuizManager, sweep_interval_seconds: float | None = None) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager.

    When ``sweep_interval_seconds`` is given, the expiry sweep runs for the
    lifetime of the app and is stopped on shutdown.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if sweep_interval_seconds is not None:
            quiz_manager.start_background_sweep(sweep_interval_seconds)
        try:
            yield
        finally:
            quiz_manager.clear_all_timeouts()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_DESCRIPTION,
        lifespan=lifespan,
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    def current_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> User:
        token = credentials.credentials if credentials is not None else None
        return manager.authenticate(token)

    @app.exception_handler(QuizError)
    async def handle_quiz_error(request: Request, exc: QuizError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message, "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": _describe_validation_error(exc), "code": "INVALID_REQUEST"},
        )

    # --- Accounts ---

    @app.post("/auth/register", status_code=201)
    def register(
        payload: CredentialsPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        user = manager.register_user(payload.username, payload.password)
        return {"user": user.public_view()}

    @app.post("/auth/login")
    def login(
        payload: CredentialsPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        token, user = manager.login(payload.username, payload.password)
        return {"token": token, "user": user.public_view()}

    # --- Sessions ---
    # Fixed paths are declared before /session/{quiz_type} so they win the match.

    @app.get("/session/all")
    def get_all_sessions(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return {"sessions": manager.get_user_sessions(user.id)}

    @app.get("/session/scores")
    def get_session_scores(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        records = manager.get_user_session_scores(user.id)
        return {"scores": [record.to_dict() for record in records]}

    @app.get("/session/scores/{session_id}")
    def get_session_score(
        session_id: str,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Any:
        score = manager.get_session_score(session_id)
        if score is None:
            return JSONResponse(
                status_code=404,
                content={"message": "Session score not found", "code": "SESSION_SCORE_NOT_FOUND"},
            )
        return {"sessionId": session_id, "score": score.score, "total": score.total}

    @app.get("/session/multiplier/{quiz_type}")
    def get_own_multiplier(
        quiz_type: str,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return {"quizType": quiz_type, "multiplier": manager.get_user_multiplier(user.id, quiz_type)}

    @app.get("/session/{quiz_type}")
    def create_session(
        quiz_type: str,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = manager.create_session(user.id, quiz_type)
        return session.public_view()

    @app.post("/session/{quiz_type}")
    def submit_answers(
        quiz_type: str,
        payload: SubmitAnswersPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        result = manager.validate_quiz_answers(payload.sessionId, user.id, payload.answers, quiz_type)
        return {"score": result.score, "total": result.total}

    # --- Stats & Credits ---

    @app.get("/stats")
    def get_stats(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        stats = manager.get_user_stats(user.id).to_dict()
        balance = manager.get_credit_balance(user.id)
        stats.update(
            earnedCredits=balance.earned,
            claimedCredits=balance.claimed,
            availableCredits=balance.available,
        )
        return stats

    @app.post("/stats/claim")
    def claim_credits(
        payload: ClaimPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        balance = manager.claim_credits(user.id, payload.claimedAmount)
        return {
            "message": "Claimed credits added successfully",
            "claimedAmount": payload.claimedAmount,
            "totalClaimed": balance.claimed,
            "totalEarned": balance.earned,
            "available": balance.available,
        }

    @app.get("/credit/earned")
    def get_earned(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return {"earned": manager.get_credit_balance(user.id).earned}

    @app.get("/credit/claimed")
    def get_claimed(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return {"claimed": manager.get_credit_balance(user.id).claimed}

    @app.post("/credit/earned")
    def add_earned(
        payload: AmountPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        balance = manager.add_earned_credits(user.id, payload.amount)
        return {
            "message": "Earned credits added successfully",
            "amount": payload.amount,
            "totalEarned": balance.earned,
        }

    @app.post("/credit/claimed")
    def add_claimed(
        payload: AmountPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        balance = manager.claim_credits(user.id, payload.amount)
        return {
            "message": "Claimed credits added successfully",
            "amount": payload.amount,
            "totalClaimed": balance.claimed,
            "totalEarned": balance.earned,
        }

    # --- Parent Dashboard ---

    @app.post("/parent/login")
    def parent_login(
        payload: CredentialsPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        token, user = manager.parent_login(payload.username, payload.password)
        return {"token": token, "user": user.public_view()}

    @app.get("/parent/validate")
    def parent_validate(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        manager.users.require_parent(user)
        return {"valid": True, "user": {"id": user.id, "username": user.username}}

    @app.get("/parent/users")
    def parent_list_users(
        search: str | None = None,
        limit: int | None = None,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return {"users": manager.list_users(user, search=search, limit=limit)}

    @app.get("/parent/users/{user_id}")
    def parent_get_user(
        user_id: str,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return manager.get_user_summary(user, user_id)

    @app.patch("/parent/users/{user_id}/multiplier")
    def parent_update_multiplier(
        user_id: str,
        payload: MultiplierPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return manager.update_multiplier(user, user_id, payload.quizType, payload.multiplier)

    @app.patch("/parent/users/{user_id}/credits")
    def parent_update_credits(
        user_id: str,
        payload: CreditsPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return manager.update_credits(
            user,
            user_id,
            field=payload.field,
            amount=payload.amount,
            earned_credits=payload.earnedCredits,
            claimed_credits=payload.claimedCredits,
            earned_delta=payload.earnedDelta,
            claimed_delta=payload.claimedDelta,
        )

    return app
