from datetime import datetime

from pydantic import BaseModel, Field


class TenantCreate(BaseModel):
    code: str = Field(min_length=2, max_length=64)
    name: str = Field(min_length=2, max_length=120)
    schema_name: str = Field(min_length=1, max_length=63)


class TenantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    is_active: bool | None = None


class TenantOut(BaseModel):
    id: int
    code: str
    name: str
    schema_name: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
