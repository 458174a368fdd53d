"""
core/meal_plans.py
────────────────────────────────────────────────────────────────────────
Generate a meal plan through the external API and keep it on the user's
meal-plan document.

The document keeps the newest `history_limit` plans (1 → each generation
replaces the previous one).
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.locks import UserLocks
from core.models.meal_plan import MealPlanParams
from core.models.result import Result
from services.db import MealPlanDocument
from services.spoonacular import SpoonacularClient

_LOG = logging.getLogger(__name__)

EMPTY_PLAN = "empty meal plan, add a meal plan first"


class MealPlanService:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        client: SpoonacularClient,
        *,
        user_email: str | None,
        history_limit: int = 1,
    ) -> None:
        self._sessions = sessions
        self.client = client
        self._user_email = user_email
        self._history_limit = max(1, history_limit)
        self._locks = UserLocks()

    def _ready(self, params: MealPlanParams) -> bool:
        # "0" counts as supplied; anything but digits does not
        calories = (params.target_calories or "").strip()
        return calories.isdigit() and all(
            (
                self.client.api_key,
                self._user_email,
                params.time_frame,
                params.diet,
            )
        )

    async def generate_meal_plan(self, user_id: str, params: MealPlanParams) -> Result:
        """
        Connect → generate → persist.

        Raises `MealPlanAPIError` when the external API fails; the router
        turns that into a 500.
        """
        if not self._ready(params):
            return Result.fail("data not received")

        handle = await self.client.connect(self._user_email)
        plan = await self.client.generate(params)
        _LOG.info("generated %s meal plan for user %s", params.time_frame, user_id)

        try:
            async with self._locks.hold(user_id):
                async with self._sessions() as session:
                    async with session.begin():
                        doc = (
                            await session.execute(
                                select(MealPlanDocument)
                                .where(MealPlanDocument.user_id == user_id)
                                .with_for_update()
                            )
                        ).scalar_one_or_none()
                        created = doc is None
                        if created:
                            doc = MealPlanDocument(user_id=user_id, mealplan_details=[])
                            session.add(doc)
                        details = [*(doc.mealplan_details or []), {"mealPlan": plan}]
                        doc.mealplan_details = details[-self._history_limit:]
                        doc.external_username = handle.username
                        doc.external_hash = handle.hash
        except SQLAlchemyError:
            _LOG.exception("saving meal plan failed for user %s", user_id)
            return Result.fail("Something Went Wrong")

        if created:
            return Result.ok("meal Added Successfully")
        return Result.ok("New mealplan Added Successfully")

    async def view_meal_plan(self, user_id: str) -> Result:
        async with self._sessions() as session:
            doc = (
                await session.execute(
                    select(MealPlanDocument).where(MealPlanDocument.user_id == user_id)
                )
            ).scalar_one_or_none()
            details = list(doc.mealplan_details or []) if doc is not None else []

        if not details:
            return Result.fail(EMPTY_PLAN)
        return Result.ok("Meal plan fetched successfully", details)
