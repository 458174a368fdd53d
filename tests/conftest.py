"""
Shared test setup.

The environment is pinned before any project module imports `config`, so
the app under test runs against a throw-away SQLite file.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="reminders-test-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'app.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SPOONACULAR_API_KEY"] = "test-key"
os.environ["USER_EMAIL"] = "owner@example.com"
os.environ.pop("PUSH_GATEWAY_URL", None)

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from services.db import Base


@pytest.fixture
def make_sessions(tmp_path):
    """Async factory → (engine, sessionmaker) on a fresh SQLite file."""

    async def _make():
        eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
        async with eng.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        return eng, async_sessionmaker(eng, expire_on_commit=False)

    return _make
