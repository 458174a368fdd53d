from __future__ import annotations

from pydantic import BaseModel, Field

from core.models.reminder import Repeat


class ReminderIn(BaseModel):
    # all optional: missing fields are reported in the result body, not as 422s
    type: str | None = Field(None, examples=["water", "medication"])
    title: str | None = None
    message: str | None = None
    time: str | None = Field(None, description="local wall-clock time, e.g. 2024-05-01T09:30:00")
    repeat: Repeat = "none"

    def missing(self) -> list[str]:
        return [name for name in ("type", "message", "time") if not getattr(self, name)]


class ReminderEdit(BaseModel):
    type: str | None = None
    title: str | None = None
    message: str | None = None
    time: str | None = None
    repeat: Repeat | None = None
