"""
core/reminder_store.py
────────────────────────────────────────────────────────────────────────
Per-user reminder document: one row per user holding the ordered list of
reminder entries.

Every read-modify-write runs under a per-user lock and inside one
transaction that selects the row FOR UPDATE, so two concurrent requests for
the same user append to the latest list rather than a stale copy. The whole
list is written back on each change.

After each successful write the document's entries are handed to the
scheduler (if one is attached).
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.locks import UserLocks
from core.models.reminder import ReminderEntry, ReminderSnapshot
from core.models.result import Result
from services.db import ReminderDocument

_LOG = logging.getLogger(__name__)

# fields a caller may change through edit_reminder
EDITABLE_FIELDS = ("type", "title", "message", "time", "repeat")


class SchedulerLike(Protocol):
    def schedule_document(self, snapshot: ReminderSnapshot) -> None: ...
    def schedule(self, document_id: int, entry: ReminderEntry) -> Any: ...
    def cancel(self, reminder_id: str) -> bool: ...
    def cancel_document(self, snapshot: ReminderSnapshot) -> None: ...


def _snapshot(doc: ReminderDocument) -> ReminderSnapshot:
    return ReminderSnapshot(
        id=doc.id,
        user_id=doc.user_id,
        entries=[ReminderEntry.model_validate(e) for e in (doc.reminder_info or [])],
    )


class ReminderStore:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        scheduler: SchedulerLike | None = None,
    ) -> None:
        self._sessions = sessions
        self.scheduler = scheduler
        self._locks = UserLocks()

    # ───────────────────────── helpers ──────────────────────────
    @staticmethod
    async def _load(session: AsyncSession, user_id: str) -> ReminderDocument | None:
        return (
            await session.execute(
                select(ReminderDocument)
                .where(ReminderDocument.user_id == user_id)
                .with_for_update()
            )
        ).scalar_one_or_none()

    async def _append(
        self, user_id: str, entry: ReminderEntry, *, create: bool
    ) -> tuple[ReminderSnapshot | None, bool]:
        """Append `entry`; create the document when allowed. → (snapshot, created)"""
        async with self._locks.hold(user_id):
            async with self._sessions() as session:
                async with session.begin():
                    doc = await self._load(session, user_id)
                    if doc is None:
                        if not create:
                            return None, False
                        doc = ReminderDocument(
                            user_id=user_id, reminder_info=[entry.model_dump()]
                        )
                        session.add(doc)
                        created = True
                    else:
                        doc.reminder_info = [*(doc.reminder_info or []), entry.model_dump()]
                        created = False
                    await session.flush()
                    snap = _snapshot(doc)
        return snap, created

    def _schedule_all(self, snap: ReminderSnapshot) -> None:
        if self.scheduler is not None:
            self.scheduler.schedule_document(snap)

    # ───────────────────────── append ───────────────────────────
    async def upsert_reminder(self, user_id: str, entry: ReminderEntry) -> Result:
        try:
            snap, created = await self._append(user_id, entry, create=True)
        except SQLAlchemyError:
            _LOG.exception("reminder upsert failed for user %s", user_id)
            return Result.fail("Reminder not created")
        if snap is None:
            return Result.fail("Reminder not created")

        self._schedule_all(snap)
        msg = "Reminder created successfully" if created else "Reminder updated successfully"
        return Result.ok(msg, entry.model_dump())

    async def update_reminder(self, user_id: str, entry: ReminderEntry) -> Result:
        """Append `entry` to an existing document; never creates one."""
        try:
            snap, _ = await self._append(user_id, entry, create=False)
        except SQLAlchemyError:
            _LOG.exception("reminder update failed for user %s", user_id)
            return Result.fail("Reminder not updated")
        if snap is None:
            return Result.fail("Reminder not found")

        self._schedule_all(snap)
        return Result.ok("Reminder updated successfully", entry.model_dump())

    # ───────────────────────── edit in place ────────────────────
    async def edit_reminder(
        self, user_id: str, reminder_id: str, changes: dict[str, Any]
    ) -> Result:
        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
        try:
            async with self._locks.hold(user_id):
                async with self._sessions() as session:
                    async with session.begin():
                        doc = await self._load(session, user_id)
                        if doc is None:
                            return Result.fail("Reminder not found")
                        entries = list(doc.reminder_info or [])
                        for i, raw in enumerate(entries):
                            if raw.get("id") == reminder_id:
                                merged = {**raw, **changes}
                                if "time" in changes:
                                    merged["last_fired_at"] = None
                                edited = ReminderEntry.model_validate(merged)
                                entries[i] = edited.model_dump()
                                break
                        else:
                            return Result.fail("Reminder not found")
                        doc.reminder_info = entries
                        await session.flush()
                        document_id = doc.id
        except SQLAlchemyError:
            _LOG.exception("reminder edit failed for user %s", user_id)
            return Result.fail("Reminder not updated")

        if self.scheduler is not None:
            self.scheduler.cancel(reminder_id)
            self.scheduler.schedule(document_id, edited)
        return Result.ok("Reminder updated successfully", edited.model_dump())

    # ───────────────────────── delete ───────────────────────────
    async def delete_reminders(self, user_id: str) -> Result:
        try:
            async with self._locks.hold(user_id):
                async with self._sessions() as session:
                    async with session.begin():
                        doc = await self._load(session, user_id)
                        if doc is None:
                            return Result.fail("Reminder not deleted")
                        snap = _snapshot(doc)
                        await session.delete(doc)
        except SQLAlchemyError:
            _LOG.exception("reminder delete failed for user %s", user_id)
            return Result.fail("Reminder not deleted")

        if self.scheduler is not None:
            self.scheduler.cancel_document(snap)
        return Result.ok("Reminder deleted successfully")

    async def delete_reminder(self, user_id: str, reminder_id: str) -> Result:
        try:
            async with self._locks.hold(user_id):
                async with self._sessions() as session:
                    async with session.begin():
                        doc = await self._load(session, user_id)
                        if doc is None:
                            return Result.fail("Reminder not found")
                        entries = list(doc.reminder_info or [])
                        kept = [e for e in entries if e.get("id") != reminder_id]
                        if len(kept) == len(entries):
                            return Result.fail("Reminder not found")
                        doc.reminder_info = kept
        except SQLAlchemyError:
            _LOG.exception("reminder delete failed for user %s", user_id)
            return Result.fail("Reminder not deleted")

        if self.scheduler is not None:
            self.scheduler.cancel(reminder_id)
        return Result.ok("Reminder deleted successfully")

    # ───────────────────────── read ─────────────────────────────
    async def list_reminders(self, user_id: str) -> Result:
        async with self._sessions() as session:
            doc = (
                await session.execute(
                    select(ReminderDocument).where(ReminderDocument.user_id == user_id)
                )
            ).scalar_one_or_none()
            if doc is None:
                return Result.fail("Reminders not found")
            snap = _snapshot(doc)

        grouped: dict[str, list[dict]] = {}
        for entry in snap.entries:
            grouped.setdefault(entry.type, []).append(entry.listed())
        return Result.ok("Reminders fetched successfully", grouped)

    # ───────────────────────── scheduler support ────────────────
    async def get_document(self, document_id: int) -> ReminderSnapshot | None:
        async with self._sessions() as session:
            doc = await session.get(ReminderDocument, document_id)
            return _snapshot(doc) if doc is not None else None

    async def all_documents(self) -> list[ReminderSnapshot]:
        async with self._sessions() as session:
            docs = (await session.execute(select(ReminderDocument))).scalars().all()
            return [_snapshot(d) for d in docs]

    async def mark_fired(self, user_id: str, reminder_id: str, fired_at: str) -> bool:
        async with self._locks.hold(user_id):
            async with self._sessions() as session:
                async with session.begin():
                    doc = await self._load(session, user_id)
                    if doc is None:
                        return False
                    entries = [
                        {**e, "last_fired_at": fired_at} if e.get("id") == reminder_id else e
                        for e in (doc.reminder_info or [])
                    ]
                    doc.reminder_info = entries
        return True
