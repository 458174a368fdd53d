"""
core/delivery.py
────────────────────────────────────────────────────────────────────────
Background worker that turns fired reminders into push notifications.

Timer callbacks only enqueue; this worker resolves the user's device token,
sends, and retries with exponential backoff. Deliveries that exhaust their
attempts (or have no token to send to) land in `dead_letters`, which keeps
only the most recent `dead_letter_limit` items.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Protocol

_LOG = logging.getLogger(__name__)


class Notifier(Protocol):
    async def get_user_token(self, user_id: str) -> str | None: ...
    async def send_notification(self, token: str, message: str, title: str | None = None) -> None: ...


@dataclass
class Delivery:
    user_id: str
    reminder_id: str
    message: str
    title: str | None = None
    attempts: int = 0
    last_error: str | None = None


class NotificationWorker:
    def __init__(
        self,
        notifier: Notifier,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        dead_letter_limit: int = 1000,
    ) -> None:
        self._notifier = notifier
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds
        self._queue: asyncio.Queue[Delivery] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self.dead_letters: deque[Delivery] = deque(maxlen=max(1, dead_letter_limit))

    # ───────────────────────── lifecycle ────────────────────────
    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="notification-worker")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _LOG.info("notification worker stopped (%d pending)", self._queue.qsize())

    async def enqueue(self, delivery: Delivery) -> None:
        await self._queue.put(delivery)

    async def drain(self) -> None:
        """Wait until every queued delivery has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            delivery = await self._queue.get()
            try:
                await self.deliver(delivery)
            except Exception:  # noqa: BLE001
                _LOG.exception("delivery worker crashed on reminder %s", delivery.reminder_id)
            finally:
                self._queue.task_done()

    # ───────────────────────── one delivery ─────────────────────
    async def deliver(self, delivery: Delivery) -> bool:
        """Send `delivery`, retrying transient failures. → True when sent"""
        while delivery.attempts < self._max_attempts:
            delivery.attempts += 1
            try:
                token = await self._notifier.get_user_token(delivery.user_id)
                if not token:
                    delivery.last_error = "no device token"
                    _LOG.warning("no device token for user %s; reminder %s not sent",
                                 delivery.user_id, delivery.reminder_id)
                    break
                await self._notifier.send_notification(token, delivery.message, delivery.title)
                _LOG.info("reminder %s delivered to user %s", delivery.reminder_id, delivery.user_id)
                return True
            except Exception as exc:  # noqa: BLE001
                delivery.last_error = str(exc)
                _LOG.warning("sending reminder %s failed (attempt %d/%d): %s",
                             delivery.reminder_id, delivery.attempts, self._max_attempts, exc)
                if delivery.attempts < self._max_attempts:
                    await asyncio.sleep(self._backoff * 2 ** (delivery.attempts - 1))

        self.dead_letters.append(delivery)
        _LOG.error("reminder %s dead-lettered after %d attempt(s): %s",
                   delivery.reminder_id, delivery.attempts, delivery.last_error)
        return False
