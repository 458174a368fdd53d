"""
ReminderStore against a real (SQLite) database, scheduler stubbed out.
"""
from __future__ import annotations

import asyncio

from core.models.reminder import ReminderEntry
from core.reminder_store import ReminderStore


class RecordingScheduler:
    def __init__(self):
        self.scheduled: list[tuple[int, str]] = []
        self.cancelled: list[str] = []

    def schedule_document(self, snapshot):
        for e in snapshot.entries:
            self.schedule(snapshot.id, e)

    def schedule(self, document_id, entry):
        self.scheduled.append((document_id, entry.id))

    def cancel(self, reminder_id):
        self.cancelled.append(reminder_id)
        return True

    def cancel_document(self, snapshot):
        for e in snapshot.entries:
            self.cancel(e.id)


def _entry(kind="water", msg="drink", time="2099-01-01T04:30:00Z", **kw) -> ReminderEntry:
    return ReminderEntry(type=kind, title=kind.title(), message=msg, time=time, **kw)


def _run(make_sessions, scenario):
    async def _main():
        eng, sessions = await make_sessions()
        try:
            await scenario(sessions)
        finally:
            await eng.dispose()

    asyncio.run(_main())


def test_first_upsert_creates_single_entry_document(make_sessions):
    async def scenario(sessions):
        sched = RecordingScheduler()
        store = ReminderStore(sessions, sched)
        entry = _entry()

        res = await store.upsert_reminder("u1", entry)
        assert res.success
        assert res.message == "Reminder created successfully"
        assert res.data["id"] == entry.id

        docs = await store.all_documents()
        assert len(docs) == 1
        assert docs[0].user_id == "u1"
        assert docs[0].entries == [entry]
        assert sched.scheduled == [(docs[0].id, entry.id)]

    _run(make_sessions, scenario)


def test_second_upsert_appends_and_reschedules_everything(make_sessions):
    async def scenario(sessions):
        sched = RecordingScheduler()
        store = ReminderStore(sessions, sched)
        first, second = _entry(msg="one"), _entry(msg="two")

        await store.upsert_reminder("u1", first)
        res = await store.upsert_reminder("u1", second)
        assert res.message == "Reminder updated successfully"

        (doc,) = await store.all_documents()
        assert [e.message for e in doc.entries] == ["one", "two"]
        # every entry is handed to the scheduler again after each write
        assert [rid for _, rid in sched.scheduled] == [first.id, first.id, second.id]

    _run(make_sessions, scenario)


def test_concurrent_upserts_do_not_lose_entries(make_sessions):
    async def scenario(sessions):
        store = ReminderStore(sessions)
        await store.upsert_reminder("u1", _entry(msg="seed"))
        await asyncio.gather(*(store.upsert_reminder("u1", _entry(msg=str(i))) for i in range(5)))

        (doc,) = await store.all_documents()
        assert len(doc.entries) == 6
        assert len(store._locks) == 0

    _run(make_sessions, scenario)


def test_update_requires_existing_document(make_sessions):
    async def scenario(sessions):
        store = ReminderStore(sessions)
        res = await store.update_reminder("ghost", _entry())
        assert not res.success
        assert res.message == "Reminder not found"
        assert await store.all_documents() == []

        await store.upsert_reminder("u1", _entry(msg="a"))
        res = await store.update_reminder("u1", _entry(msg="b"))
        assert res.success
        (doc,) = await store.all_documents()
        assert [e.message for e in doc.entries] == ["a", "b"]

    _run(make_sessions, scenario)


def test_edit_in_place_replaces_job(make_sessions):
    async def scenario(sessions):
        sched = RecordingScheduler()
        store = ReminderStore(sessions, sched)
        entry = _entry(msg="old")
        await store.upsert_reminder("u1", entry)

        res = await store.edit_reminder(
            "u1", entry.id, {"message": "new", "time": "2099-02-01T00:00:00Z", "user_id": "x"}
        )
        assert res.success
        (doc,) = await store.all_documents()
        assert len(doc.entries) == 1
        assert doc.entries[0].message == "new"
        assert doc.entries[0].time == "2099-02-01T00:00:00Z"
        assert doc.entries[0].id == entry.id
        assert entry.id in sched.cancelled

        missing = await store.edit_reminder("u1", "nope", {"message": "x"})
        assert missing.message == "Reminder not found"

    _run(make_sessions, scenario)


def test_list_groups_by_type_in_order(make_sessions):
    async def scenario(sessions):
        store = ReminderStore(sessions)
        for kind, msg in (("water", "w1"), ("medication", "m1"), ("water", "w2")):
            await store.upsert_reminder("u1", _entry(kind=kind, msg=msg))

        res = await store.list_reminders("u1")
        assert res.success
        assert set(res.data) == {"water", "medication"}
        assert [r["message"] for r in res.data["water"]] == ["w1", "w2"]
        assert len(res.data["medication"]) == 1
        item = res.data["water"][0]
        assert set(item) == {"title", "message", "time", "repeat", "created_at", "id"}

    _run(make_sessions, scenario)


def test_list_empty_document_is_empty_success(make_sessions):
    async def scenario(sessions):
        store = ReminderStore(sessions)
        entry = _entry()
        await store.upsert_reminder("u1", entry)
        await store.delete_reminder("u1", entry.id)

        res = await store.list_reminders("u1")
        assert res.success
        assert res.data == {}

    _run(make_sessions, scenario)


def test_delete_all_removes_document_and_cancels_jobs(make_sessions):
    async def scenario(sessions):
        sched = RecordingScheduler()
        store = ReminderStore(sessions, sched)

        res = await store.delete_reminders("u1")
        assert not res.success

        a, b = _entry(), _entry(kind="medication")
        await store.upsert_reminder("u1", a)
        await store.upsert_reminder("u1", b)

        res = await store.delete_reminders("u1")
        assert res.success
        assert set(sched.cancelled) == {a.id, b.id}

        listed = await store.list_reminders("u1")
        assert not listed.success
        assert listed.message == "Reminders not found"

    _run(make_sessions, scenario)


def test_mark_fired_records_occurrence(make_sessions):
    async def scenario(sessions):
        store = ReminderStore(sessions)
        entry = _entry()
        await store.upsert_reminder("u1", entry)
        (doc,) = await store.all_documents()

        assert await store.mark_fired("u1", entry.id, "2099-01-01T04:30:00Z")
        snap = await store.get_document(doc.id)
        assert snap.find(entry.id).last_fired_at == "2099-01-01T04:30:00Z"
        assert await store.get_document(doc.id + 100) is None

    _run(make_sessions, scenario)
