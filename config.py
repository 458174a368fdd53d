"""
Centralised settings loader.

Every key can be supplied through the environment or a local `.env` file.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic_settings import BaseSettings


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ─────────────────────────────────────────────────
    env_name: str = "local"
    log_level: str = "INFO"
    database_url: str | None = None
    cloud_sql_instance: str | None = None
    db_user: str | None = None
    db_pass: str | None = None
    db_name: str | None = None
    jwt_secret: str = "changeme"

    # ─── external meal-planning API ──────────────────────────────────
    spoonacular_api_key: str | None = None
    spoonacular_base_url: str = "https://api.spoonacular.com"
    user_email: str | None = None
    http_timeout_seconds: float = 15.0
    http_max_retries: int = 3
    http_backoff_seconds: float = 0.5
    mealplan_history_limit: int = 1

    # ─── reminders ───────────────────────────────────────────────────
    source_offset_minutes: int = 330  # IST
    reminder_grace_seconds: int = 300
    push_gateway_url: str | None = None
    push_gateway_key: str | None = None
    delivery_max_attempts: int = 3
    delivery_backoff_seconds: float = 1.0
    delivery_dead_letter_limit: int = 1000

    # allow other teammates’ env-vars without crashing
    model_config = {"extra": "ignore", "env_file": ".env", "env_file_encoding": "utf-8"}


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
