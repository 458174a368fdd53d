from pydantic import BaseModel


class MealPlanParams(BaseModel):
    time_frame: str | None = None        # "day" | "week"
    target_calories: str | None = None   # raw query value, digits only
    exclude: str | None = None           # comma separated ingredients
    diet: str | None = None


class ExternalHandle(BaseModel):
    username: str
    hash: str
