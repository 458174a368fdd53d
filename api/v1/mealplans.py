# api/v1/mealplans.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from core.meal_plans import MealPlanService
from core.models.meal_plan import MealPlanParams
from core.models.result import Result
from services.spoonacular import MealPlanAPIError
from api.v1.deps import USER_NOT_FOUND, current_user_id, get_meal_plan_service, server_fault

_LOG = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate", response_model=Result, response_model_exclude_none=True)
async def generate_meal_plan(
    time_frame: str | None = Query(None, alias="timeFrame"),
    target_calories: str | None = Query(None, alias="targetCalories"),
    exclude: str | None = Query(None),
    diet: str | None = Query(None),
    user_id: str | None = Depends(current_user_id),
    service: MealPlanService = Depends(get_meal_plan_service),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    params = MealPlanParams(
        time_frame=time_frame,
        target_calories=target_calories,
        exclude=exclude,
        diet=diet,
    )
    try:
        return await service.generate_meal_plan(user_id, params)
    except MealPlanAPIError as exc:
        _LOG.error("meal plan generation failed for user %s: %s", user_id, exc)
        return server_fault({"error": "Failed to generate meal plan"})
    except Exception:  # noqa: BLE001
        _LOG.exception("generate_meal_plan failed for user %s", user_id)
        return server_fault({"error": "Failed to generate meal plan"})


@router.get("", response_model=Result, response_model_exclude_none=True)
async def view_meal_plan(
    user_id: str | None = Depends(current_user_id),
    service: MealPlanService = Depends(get_meal_plan_service),
) -> Result | JSONResponse:
    if not user_id:
        return USER_NOT_FOUND
    try:
        return await service.view_meal_plan(user_id)
    except Exception:  # noqa: BLE001
        _LOG.exception("view_meal_plan failed for user %s", user_id)
        return server_fault()
