from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SettingType = Literal["string", "number", "boolean", "json"]


class SettingUpsert(BaseModel):
    value: str
    type: SettingType = "string"
    category: str = Field(default="general", min_length=1, max_length=64)
    description: str | None = Field(default=None, max_length=255)


class SettingOut(BaseModel):
    id: int
    key: str
    value: str
    type: SettingType
    category: str
    description: str | None
    updated_at: datetime

    model_config = {"from_attributes": True}
