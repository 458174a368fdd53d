# api/v1/devices.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.models.result import Result
from services.notifications import PushNotifier
from api.v1.deps import USER_NOT_FOUND, current_user_id, get_notifier, server_fault
from api.v1.schemas import DeviceTokenIn

_LOG = logging.getLogger(__name__)

router = APIRouter()


@router.put("/token", response_model=Result, response_model_exclude_none=True)
async def register_device_token(
    body: DeviceTokenIn,
    user_id: str | None = Depends(current_user_id),
    notifier: PushNotifier = Depends(get_notifier),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        await notifier.register_token(user_id, body.token, body.platform)
    except Exception:  # noqa: BLE001
        _LOG.exception("registering device token failed for user %s", user_id)
        return server_fault()
    return Result.ok("Device token saved")
