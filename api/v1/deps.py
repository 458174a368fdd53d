# api/v1/deps.py
from __future__ import annotations

import logging

import jwt
from fastapi import Header, Request, status
from fastapi.responses import JSONResponse

from core.meal_plans import MealPlanService
from core.models.result import Result
from core.reminder_store import ReminderStore
from services.auth import verify_token
from services.notifications import PushNotifier

_LOG = logging.getLogger(__name__)

USER_NOT_FOUND = Result.fail("User not found")


async def current_user_id(authorization: str | None = Header(None)) -> str | None:
    """
    Resolve the caller from `Authorization: Bearer <jwt>`.

    Returns None instead of raising so handlers can answer with a
    structured "User not found" result.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        return verify_token(token) or None
    except jwt.PyJWTError as exc:
        _LOG.info("rejected bearer token: %s", exc)
        return None


def get_reminder_store(request: Request) -> ReminderStore:
    return request.app.state.reminders


def get_meal_plan_service(request: Request) -> MealPlanService:
    return request.app.state.meal_plans


def get_notifier(request: Request) -> PushNotifier:
    return request.app.state.notifier


def server_fault(content: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content or {"message": "Internal server error", "success": False},
    )
