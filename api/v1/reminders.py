# api/v1/reminders.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from config import settings
from core.models.reminder import ReminderEntry
from core.models.result import Result
from core.reminder_store import ReminderStore
from core.time_utils import InvalidTimestamp, normalize
from api.v1.deps import USER_NOT_FOUND, current_user_id, get_reminder_store, server_fault
from api.v1.schemas import ReminderEdit, ReminderIn

_LOG = logging.getLogger(__name__)

router = APIRouter()


# ───────────────────────── helpers ──────────────────────────
def _entry_from(body: ReminderIn) -> ReminderEntry | Result:
    """Validate + normalise a request body. → entry, or the failure to return"""
    missing = body.missing()
    if missing:
        return Result.fail(f"Missing required fields: {', '.join(missing)}")
    try:
        utc_time = normalize(body.time, settings.source_offset_minutes)
    except InvalidTimestamp:
        return Result.fail("Invalid reminder time")
    return ReminderEntry(
        type=body.type,
        title=body.title,
        message=body.message,
        time=utc_time,
        repeat=body.repeat,
    )


# ───────────────────────── create ───────────────────────────
@router.post("", response_model=Result, response_model_exclude_none=True, status_code=status.HTTP_200_OK)
async def create_reminder(
    body: ReminderIn,
    user_id: str | None = Depends(current_user_id),
    store: ReminderStore = Depends(get_reminder_store),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        entry = _entry_from(body)
        if isinstance(entry, Result):
            return entry
        res = await store.upsert_reminder(user_id, entry)
        if not res.success:
            return Result.fail("Reminder not created")
        return Result.ok("Reminder created successfully", res.data)
    except Exception:  # noqa: BLE001
        _LOG.exception("create_reminder failed for user %s", user_id)
        return server_fault()


# ───────────────────────── append (legacy "update") ─────────
@router.put("", response_model=Result, response_model_exclude_none=True)
async def update_reminder(
    body: ReminderIn,
    user_id: str | None = Depends(current_user_id),
    store: ReminderStore = Depends(get_reminder_store),
) -> Result | JSONResponse:
    """Adds a new entry to an existing reminder document."""
    if not user_id:
        return USER_NOT_FOUND
    try:
        entry = _entry_from(body)
        if isinstance(entry, Result):
            return entry
        return await store.update_reminder(user_id, entry)
    except Exception:  # noqa: BLE001
        _LOG.exception("update_reminder failed for user %s", user_id)
        return server_fault()


# ───────────────────────── edit in place ────────────────────
@router.patch("/{reminder_id}", response_model=Result, response_model_exclude_none=True)
async def edit_reminder(
    reminder_id: str,
    body: ReminderEdit,
    user_id: str | None = Depends(current_user_id),
    store: ReminderStore = Depends(get_reminder_store),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        changes = body.model_dump(exclude_none=True)
        if not changes:
            return Result.fail("Nothing to update")
        if "time" in changes:
            try:
                changes["time"] = normalize(changes["time"], settings.source_offset_minutes)
            except InvalidTimestamp:
                return Result.fail("Invalid reminder time")
        return await store.edit_reminder(user_id, reminder_id, changes)
    except Exception:  # noqa: BLE001
        _LOG.exception("edit_reminder failed for user %s", user_id)
        return server_fault()


# ───────────────────────── read ─────────────────────────────
@router.get("", response_model=Result, response_model_exclude_none=True)
async def get_reminders(
    user_id: str | None = Depends(current_user_id),
    store: ReminderStore = Depends(get_reminder_store),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        return await store.list_reminders(user_id)
    except Exception:  # noqa: BLE001
        _LOG.exception("get_reminders failed for user %s", user_id)
        return server_fault()


# ───────────────────────── delete ───────────────────────────
@router.delete("", response_model=Result, response_model_exclude_none=True)
async def delete_reminders(
    user_id: str | None = Depends(current_user_id),
    store: ReminderStore = Depends(get_reminder_store),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        return await store.delete_reminders(user_id)
    except Exception:  # noqa: BLE001
        _LOG.exception("delete_reminders failed for user %s", user_id)
        return server_fault()


@router.delete("/{reminder_id}", response_model=Result, response_model_exclude_none=True)
async def delete_reminder(
    reminder_id: str,
    user_id: str | None = Depends(current_user_id),
    store: ReminderStore = Depends(get_reminder_store),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        return await store.delete_reminder(user_id, reminder_id)
    except Exception:  # noqa: BLE001
        _LOG.exception("delete_reminder failed for user %s", user_id)
        return server_fault()
