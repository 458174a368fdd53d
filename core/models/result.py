from typing import Any

from pydantic import BaseModel


class Result(BaseModel):
    """Uniform handler outcome: domain failures travel here, not as exceptions."""
    message: str
    success: bool
    data: Any = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "Result":
        return cls(message=message, success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> "Result":
        return cls(message=message, success=False)
