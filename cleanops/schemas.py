from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from cleanops.models import UserRole

RequiredName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
OptionalText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=512)]
LongText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=5000)]


class SuccessResponse(BaseModel):
    success: bool = True


class LoginRequest(BaseModel):
    username: RequiredName
    password: str = Field(min_length=1, max_length=256)


class IdentitySessionRequest(BaseModel):
    id_token: str = Field(min_length=1)


class SessionUserRead(BaseModel):
    id: int
    username: str
    name: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    success: bool = True
    user: SessionUserRead


class SessionRead(BaseModel):
    userId: int
    userName: str
    userRole: UserRole
    userEmail: str | None = None


class UserCreate(BaseModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    password: str = Field(min_length=6, max_length=256)
    name: RequiredName
    role: UserRole = UserRole.OPERATOR


class UserUpdate(BaseModel):
    name: RequiredName | None = None
    role: UserRole | None = None
    password: str | None = Field(default=None, min_length=6, max_length=256)


class UserRead(BaseModel):
    id: int
    username: str
    name: str
    role: UserRole
    email: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientCreate(BaseModel):
    name: RequiredName
    contact: OptionalText | None = None
    address: OptionalText | None = None
    phone: Annotated[str, StringConstraints(strip_whitespace=True, max_length=64)] | None = None
    email: OptionalText | None = None


class ClientUpdate(ClientCreate):
    pass


class ClientRead(BaseModel):
    id: int
    name: str
    contact: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ObjectiveCreate(BaseModel):
    name: RequiredName
    client_id: int | None = Field(default=None, ge=1)
    address: OptionalText | None = None
    description: LongText | None = None


class ObjectiveUpdate(ObjectiveCreate):
    pass


class ObjectiveRead(BaseModel):
    id: int
    name: str
    client_id: int | None = None
    client_name: str | None = None
    address: str | None = None
    description: str | None = None
    created_at: datetime


class SectorCreate(BaseModel):
    objective_id: int = Field(ge=1)
    name: RequiredName
    description: LongText | None = None


class SectorUpdate(BaseModel):
    name: RequiredName
    description: LongText | None = None


class SectorRead(BaseModel):
    id: int
    objective_id: int
    objective_name: str | None = None
    name: str
    description: str | None = None
    created_at: datetime


class SupplyCreate(BaseModel):
    name: RequiredName
    description: LongText | None = None
    unit: Annotated[str, StringConstraints(strip_whitespace=True, max_length=32)] | None = None
    quantity_in_stock: int = Field(default=0, ge=0)
    min_stock_level: int = Field(default=0, ge=0)


class SupplyUpdate(BaseModel):
    name: RequiredName
    description: LongText | None = None
    unit: Annotated[str, StringConstraints(strip_whitespace=True, max_length=32)] | None = None
    quantity_in_stock: int | None = Field(default=None, ge=0)
    min_stock_level: int | None = Field(default=None, ge=0)


class SupplyRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    unit: str | None = None
    quantity_in_stock: int
    min_stock_level: int
    is_low_stock: bool
    stock_status: Literal["low", "ok"]
    created_at: datetime


class SupplyUsageCreate(BaseModel):
    supply_id: int = Field(ge=1)
    objective_id: int = Field(ge=1)
    quantity_used: int = Field(gt=0)


class SupplyUsageRead(BaseModel):
    id: int
    supply_id: int
    supply_name: str | None = None
    unit: str | None = None
    objective_id: int
    objective_name: str | None = None
    operator_id: int | None = None
    operator_name: str | None = None
    quantity_used: int
    used_at: datetime


class CleaningRecordCreate(BaseModel):
    sector_id: int = Field(ge=1)
    status: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)] | None = None


class CleaningRecordRead(BaseModel):
    id: int
    sector_id: int
    sector_name: str | None = None
    objective_id: int | None = None
    objective_name: str | None = None
    operator_id: int | None = None
    operator_name: str | None = None
    cleaned_at: datetime
    status: str


class ObservationCreate(BaseModel):
    sector_id: int = Field(ge=1)
    text: LongText


class ObservationRead(BaseModel):
    id: int
    sector_id: int
    sector_name: str | None = None
    objective_id: int | None = None
    objective_name: str | None = None
    operator_id: int | None = None
    operator_name: str | None = None
    text: str
    created_at: datetime


class MessageCreate(BaseModel):
    to_user_id: int = Field(ge=1)
    message: LongText


class MessageRead(BaseModel):
    id: int
    from_user_id: int
    from_name: str | None = None
    from_role: UserRole | None = None
    to_user_id: int
    to_name: str | None = None
    to_role: UserRole | None = None
    message: str
    read: bool
    created_at: datetime


class UnreadCountResponse(BaseModel):
    count: int


class DashboardStatsRead(BaseModel):
    total_operators: int
    total_clients: int
    total_objectives: int
    low_supplies: int
