from pydantic import BaseModel, Field


class DeviceTokenIn(BaseModel):
    token: str = Field(..., min_length=1)
    platform: str | None = Field(None, examples=["ios", "android"])
