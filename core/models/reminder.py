from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field

from core.time_utils import format_utc, utc_now

Repeat = Literal["none", "daily"]

# fields shown when entries are grouped by type
LISTED_FIELDS = ("title", "message", "time", "repeat", "created_at", "id")


def _new_id() -> str:
    return uuid.uuid4().hex


def _created_at() -> str:
    return format_utc(utc_now())


class ReminderEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    type: str
    title: str | None = None
    message: str
    time: str                  # UTC, YYYY-MM-DDTHH:MM:SSZ
    repeat: Repeat = "none"
    created_at: str = Field(default_factory=_created_at)
    last_fired_at: str | None = None

    def listed(self) -> dict:
        return self.model_dump(include=set(LISTED_FIELDS))


@dataclass
class ReminderSnapshot:
    """Detached copy of a reminder document, safe to hand to the scheduler."""
    id: int
    user_id: str
    entries: list[ReminderEntry] = field(default_factory=list)

    def find(self, reminder_id: str) -> ReminderEntry | None:
        for entry in self.entries:
            if entry.id == reminder_id:
                return entry
        return None
