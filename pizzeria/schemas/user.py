from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pizzeria.models.enums import UserRole

from .common import Pagination


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole
    is_active: bool
    marketing_opt_in: bool
    supabase_user_id: Optional[str] = None
    points: int = 0
    created_at: datetime


class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=255)
    marketing_opt_in: Optional[bool] = None


class UserAdminUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserListResponse(BaseModel):
    pagination: Pagination
    items: list[UserRead]
