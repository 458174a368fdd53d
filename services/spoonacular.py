# services/spoonacular.py
"""
Minimal async client for the Spoonacular meal planner.

Two calls are used:
  • POST /users/connect         → per-user username + hash
  • GET  /mealplanner/generate  → a day / week plan for the given constraints

Transport errors, 429s and 5xx responses are retried with exponential
backoff; anything else (or exhausted retries) raises `MealPlanAPIError`.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

import httpx

from core.models.meal_plan import ExternalHandle, MealPlanParams

_LOG = logging.getLogger(__name__)

_RETRY_STATUS = {429, 500, 502, 503, 504}


class MealPlanAPIError(RuntimeError):
    """The meal-planning API could not produce a usable response."""


class SpoonacularClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.spoonacular.com",
        *,
        timeout: float = 15.0,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff = backoff_seconds
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        params = {"apiKey": self.api_key, **kwargs.pop("params", {})}
        params = {k: v for k, v in params.items() if v is not None}
        url = f"{self._base_url}{path}"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as http:
            for attempt in range(self._max_retries):
                try:
                    r = await http.request(method, url, params=params, **kwargs)
                except httpx.TransportError as exc:
                    reason = f"{type(exc).__name__}: {exc}"
                else:
                    if r.status_code not in _RETRY_STATUS:
                        if r.is_error:
                            _LOG.error("spoonacular %s %s → %s %s", method, path, r.status_code, r.text)
                            raise MealPlanAPIError(f"{path} returned {r.status_code}")
                        try:
                            return r.json()
                        except ValueError as exc:
                            raise MealPlanAPIError(f"{path} returned invalid JSON") from exc
                    reason = f"HTTP {r.status_code}"

                if attempt + 1 < self._max_retries:
                    backoff = self._backoff * (2 ** attempt) + random.random() * self._backoff
                    _LOG.warning("spoonacular %s failed (%s), retrying in %.1fs…", path, reason, backoff)
                    await asyncio.sleep(backoff)

        raise MealPlanAPIError(f"{path} failed after {self._max_retries} attempts: {reason}")

    async def connect(self, username: str) -> ExternalHandle:
        data = await self._request("POST", "/users/connect", json={"username": username})
        try:
            return ExternalHandle(username=data["username"], hash=data["hash"])
        except (KeyError, TypeError) as exc:
            raise MealPlanAPIError("connect response missing username/hash") from exc

    async def generate(self, params: MealPlanParams) -> dict[str, Any]:
        query: dict[str, Any] = {
            "timeFrame": params.time_frame,
            "targetCalories": params.target_calories,
            "diet": params.diet,
        }
        if params.exclude:
            query["exclude"] = params.exclude
        return await self._request(
            "GET",
            "/mealplanner/generate",
            params=query,
            headers={"Content-Type": "application/json"},
        )
