from datetime import datetime

from pydantic import BaseModel, Field


class RoleSummary(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class EmployeeCreate(BaseModel):
    employee_id: str = Field(min_length=2, max_length=32)
    name: str = Field(min_length=2, max_length=120)
    email: str = Field(min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)
    role_ids: list[int] = Field(default_factory=list)


class EmployeeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    email: str | None = Field(default=None, min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str | None = Field(default=None, min_length=6, max_length=128)
    is_active: bool | None = None


class EmployeeOut(BaseModel):
    id: int
    employee_id: str
    name: str
    role: str
    email: str
    is_active: bool
    created_at: datetime
    roles: list[RoleSummary] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RoleAssignment(BaseModel):
    role_ids: list[int] = Field(min_length=1)


class PermissionOut(BaseModel):
    id: int
    module: str
    action: str
    scope: str | None
    code: str
    description: str | None

    model_config = {"from_attributes": True}


class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=64)
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)


class RoleOut(BaseModel):
    id: int
    name: str
    description: str | None
    is_system: bool
    permissions: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RolePermissionUpdate(BaseModel):
    permission: str = Field(min_length=3, max_length=128, pattern=r"^[a-z_]+:[a-z_]+$")
    granted: bool = True


class AccessReport(BaseModel):
    employee: EmployeeOut
    roles: list[str]
    permissions: list[str]
