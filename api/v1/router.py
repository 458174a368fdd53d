# api/v1/router.py
from fastapi import APIRouter

from . import devices, mealplans, reminders

api_router = APIRouter()

api_router.include_router(reminders.router, prefix="/reminders", tags=["Reminders"])
api_router.include_router(mealplans.router, prefix="/mealplan", tags=["Meal plans"])
api_router.include_router(devices.router, prefix="/devices", tags=["Devices"])
