"""
core/scheduler.py
────────────────────────────────────────────────────────────────────────
In-process notification scheduler.

  • one asyncio task per reminder, kept in a job table keyed by reminder id
  • re-scheduling a reminder replaces its job, deleting cancels it
  • "daily" recurrence is a chain of one-shot jobs, each armed exactly 24h
    after the previous trigger instant
  • on startup `rehydrate()` re-arms everything still pending in the store

Dispatch itself is handed to the delivery worker; nothing raised while
firing escapes the timer task.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

from core.delivery import Delivery
from core.models.reminder import ReminderEntry, ReminderSnapshot
from core.time_utils import InvalidTimestamp, format_utc, parse_utc, utc_now

_LOG = logging.getLogger(__name__)

ONE_DAY = timedelta(hours=24)


class ReminderSource(Protocol):
    async def get_document(self, document_id: int) -> ReminderSnapshot | None: ...
    async def all_documents(self) -> list[ReminderSnapshot]: ...
    async def mark_fired(self, user_id: str, reminder_id: str, fired_at: str) -> bool: ...


class DeliveryQueue(Protocol):
    async def enqueue(self, delivery: Delivery) -> None: ...


@dataclass
class ScheduledJob:
    reminder_id: str
    document_id: int
    entry: ReminderEntry
    due: datetime
    task: asyncio.Task | None = None


class ReminderScheduler:
    def __init__(
        self,
        store: ReminderSource,
        delivery: DeliveryQueue,
        *,
        grace_seconds: float = 300,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._grace = timedelta(seconds=grace_seconds)
        self._clock = clock
        self.jobs: dict[str, ScheduledJob] = {}

    # ───────────────────────── arming ───────────────────────────
    def schedule(self, document_id: int, entry: ReminderEntry) -> ScheduledJob | None:
        """Arm `entry` at its stored time. Past or unparseable times are skipped."""
        try:
            due = parse_utc(entry.time)
        except InvalidTimestamp:
            _LOG.warning("reminder %s has an unparseable time %r", entry.id, entry.time)
            return None
        if due <= self._clock():
            return None
        return self._arm(document_id, entry, due)

    def schedule_document(self, snapshot: ReminderSnapshot) -> None:
        for entry in snapshot.entries:
            self.schedule(snapshot.id, entry)

    def _arm(self, document_id: int, entry: ReminderEntry, due: datetime) -> ScheduledJob:
        self.cancel(entry.id)
        job = ScheduledJob(entry.id, document_id, entry, due)
        job.task = asyncio.create_task(self._wait_and_fire(job), name=f"reminder:{entry.id}")
        self.jobs[entry.id] = job
        _LOG.info("Scheduled reminder %s for %s", entry.id, format_utc(due))
        return job

    async def _wait_and_fire(self, job: ScheduledJob) -> None:
        delay = (job.due - self._clock()).total_seconds()
        if delay > 0:
            await asyncio.sleep(delay)
        await self.fire(job.reminder_id)

    # ───────────────────────── cancelling ───────────────────────
    def cancel(self, reminder_id: str) -> bool:
        job = self.jobs.pop(reminder_id, None)
        if job is None:
            return False
        if job.task is not None and job.task is not asyncio.current_task():
            job.task.cancel()
        return True

    def cancel_document(self, snapshot: ReminderSnapshot) -> None:
        for entry in snapshot.entries:
            self.cancel(entry.id)

    async def shutdown(self) -> None:
        tasks = [j.task for j in self.jobs.values() if j.task is not None]
        for reminder_id in list(self.jobs):
            self.cancel(reminder_id)
        await asyncio.gather(*tasks, return_exceptions=True)
        _LOG.info("reminder scheduler stopped (%d jobs cancelled)", len(tasks))

    # ───────────────────────── firing ───────────────────────────
    async def fire(self, reminder_id: str) -> None:
        """Trigger the job for `reminder_id` now and chain the next occurrence."""
        job = self.jobs.get(reminder_id)
        if job is None:
            return
        self.cancel(reminder_id)

        try:
            doc = await self._store.get_document(job.document_id)
        except Exception:  # noqa: BLE001
            _LOG.exception("Error loading reminder %s", reminder_id)
            return
        entry = doc.find(reminder_id) if doc is not None else None
        if entry is None:
            _LOG.info("reminder %s no longer exists; dropping job", reminder_id)
            return

        try:
            fired_at = format_utc(job.due)
            if entry.last_fired_at is not None and parse_utc(entry.last_fired_at) >= job.due:
                _LOG.info("reminder %s already fired for %s", reminder_id, fired_at)
            else:
                await self._delivery.enqueue(
                    Delivery(
                        user_id=doc.user_id,
                        reminder_id=reminder_id,
                        message=entry.message,
                        title=entry.title,
                    )
                )
                await self._store.mark_fired(doc.user_id, reminder_id, fired_at)
        except Exception:  # noqa: BLE001
            _LOG.exception("Error firing reminder %s", reminder_id)

        # an edit during the awaits above has already armed its own job
        if entry.repeat == "daily" and reminder_id not in self.jobs:
            self._arm(job.document_id, entry, job.due + ONE_DAY)

    # ───────────────────────── startup ──────────────────────────
    async def rehydrate(self) -> int:
        """Re-arm pending reminders from the store. → number of jobs armed"""
        now = self._clock()
        armed = 0
        for doc in await self._store.all_documents():
            for entry in doc.entries:
                try:
                    due = parse_utc(entry.time)
                except InvalidTimestamp:
                    _LOG.warning("skipping reminder %s with bad time %r", entry.id, entry.time)
                    continue
                due = self._next_due(entry, due, now)
                if due is None:
                    continue
                self._arm(doc.id, entry, due)
                armed += 1
        _LOG.info("rehydrated %d reminder jobs", armed)
        return armed

    def _next_due(self, entry: ReminderEntry, due: datetime, now: datetime) -> datetime | None:
        if due > now:
            return due

        last = parse_utc(entry.last_fired_at) if entry.last_fired_at else None
        if entry.repeat == "daily":
            # walk to the latest occurrence that is not in the future
            missed = due + ((now - due) // ONE_DAY) * ONE_DAY
        else:
            missed = due

        if now - missed <= self._grace and (last is None or last < missed):
            return missed
        if entry.repeat == "daily":
            return missed + ONE_DAY
        return None
